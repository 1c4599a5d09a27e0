"""
Descriptions, advice and risk levels for each security check.
"""

from typing import Dict, Optional

from pydantic import BaseModel


class CheckExplanation(BaseModel):
    description: str
    recommendation: str
    risk_level: str  # "High", "Medium", "Low"


RISK_LEVELS = ["High", "Medium", "Low"]

EXPLANATIONS: Dict[str, CheckExplanation] = {
    "Password Configuration": CheckExplanation(
        description="Validates the account password against the configured strength and maximum age policy.",
        recommendation="Use a long, unique password and change it before it exceeds the maximum age.",
        risk_level="Medium",
    ),
    "Disk Encryption": CheckExplanation(
        description="Full-disk encryption (FileVault, LUKS or BitLocker) protects your data if the device is lost or stolen.",
        recommendation="Should be ENABLED. Without disk encryption, anyone with physical access can read your files by booting from external media.",
        risk_level="High",
    ),
    "Password Protection": CheckExplanation(
        description="Requires a password to log in, preventing unauthorized access.",
        recommendation="Should be ENABLED. Password protection is the first line of defense against unauthorized access.",
        risk_level="High",
    ),
    "Immediate Password Requirement": CheckExplanation(
        description="Requires password entry when waking from screen saver or sleep. Some platforms only expose the enabled/disabled state, not the delay.",
        recommendation="Should be ENABLED. Any password requirement after lock provides protection; immediate is best.",
        risk_level="Medium",
    ),
    "Auto-lock Timeout": CheckExplanation(
        description="Automatically locks your screen after a period of inactivity to prevent unauthorized access.",
        recommendation="Should be ≤7 minutes for security, ≤15 minutes for convenience. Shorter timeouts provide better security.",
        risk_level="Medium",
    ),
    "Firewall": CheckExplanation(
        description="The firewall blocks unauthorized network connections and protects against network-based attacks.",
        recommendation="Should be ENABLED. Protects against malicious network traffic and unauthorized remote access attempts.",
        risk_level="High",
    ),
    "Firewall Stealth Mode": CheckExplanation(
        description="Makes the system invisible to network scans and ping requests, reducing attack surface.",
        recommendation="Should be ENABLED for maximum security. Makes the system harder to discover on networks.",
        risk_level="Low",
    ),
    "Package Verification": CheckExplanation(
        description="Verifies that installed software and packages are signed by trusted publishers and have not been tampered with (Gatekeeper, GPG checks, SmartScreen).",
        recommendation="Should be ENABLED. Prevents execution of malicious or unsigned software that could compromise your system.",
        risk_level="High",
    ),
    "System Integrity Protection": CheckExplanation(
        description="Protects critical system files and processes from modification (SIP, SELinux/AppArmor, Defender tamper protection).",
        recommendation="Should be ENABLED. Prevents malware and accidental modifications from corrupting system files.",
        risk_level="High",
    ),
    "Remote Login (SSH)": CheckExplanation(
        description="SSH allows remote command-line access to the system over the network.",
        recommendation="Should be DISABLED unless specifically needed. SSH access can be exploited if not properly secured.",
        risk_level="Medium",
    ),
    "Remote Management": CheckExplanation(
        description="Allows remote control and management of the system through remote desktop or similar tools.",
        recommendation="Should be DISABLED unless required for IT management. Provides extensive remote access capabilities.",
        risk_level="Medium",
    ),
    "Automatic Updates": CheckExplanation(
        description="Automatically checks for, downloads and/or installs software updates.",
        recommendation="Should be ENABLED with at least automatic security updates.",
        risk_level="High",
    ),
    "Automatic Update Mode": CheckExplanation(
        description="Level of update automation: disabled, check-only (manual download and install), download-only (manual install) or fully-automatic.",
        recommendation='At minimum use "download-only" mode, or "fully-automatic" for maximum security. Avoid "disabled" and "check-only".',
        risk_level="High",
    ),
    "Automatic Installation": CheckExplanation(
        description="Installs all available updates without user intervention.",
        recommendation="Should be ENABLED so that fixes are applied as soon as they are released.",
        risk_level="Medium",
    ),
    "Security Updates": CheckExplanation(
        description="Automatically installs critical security updates, protecting against known vulnerabilities immediately.",
        recommendation="Should be ENABLED. Critical security patches should be installed immediately to prevent exploitation.",
        risk_level="High",
    ),
    "File Sharing": CheckExplanation(
        description="Allows other devices on the network to access shared folders on this system.",
        recommendation="Should be DISABLED unless actively sharing files. File sharing expands your attack surface.",
        risk_level="Medium",
    ),
    "Screen Sharing": CheckExplanation(
        description="Allows remote users to view and control the screen over the network.",
        recommendation="Should be DISABLED unless required for remote support. Provides full remote access to your desktop.",
        risk_level="High",
    ),
    "OS Version": CheckExplanation(
        description="Ensures the operating system is up-to-date with the latest security patches.",
        recommendation="Should be current or recent version. Newer versions include important security fixes.",
        risk_level="Medium",
    ),
    "WiFi Network Security": CheckExplanation(
        description="Monitors the current WiFi connection to ensure you are not connected to banned or insecure networks.",
        recommendation="Avoid connecting to untrusted, guest, or prohibited networks for work purposes.",
        risk_level="Medium",
    ),
    "Installed Applications": CheckExplanation(
        description="Monitors installed third-party applications to ensure no banned software is present.",
        recommendation="Remove any banned applications and only install approved software from trusted sources.",
        risk_level="Medium",
    ),
}


def get_explanation(setting: str) -> Optional[CheckExplanation]:
    return EXPLANATIONS.get(setting)
