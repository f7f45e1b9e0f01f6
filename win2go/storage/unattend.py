"""First-boot answer file for the Windows To Go installation.

Windows reads ``Windows/Panther/unattend.xml`` on first boot. The file written
here creates a local administrator account, logs it on once automatically and
hides the OOBE pages, so the drive boots straight to a desktop. The offline
servicing pass sets SAN policy 4, which keeps the host machine's internal
disks offline while Windows runs from USB.
"""

from __future__ import annotations

import os
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Mapping, Optional

from win2go.logging import LoggerFactory

UNATTEND_NS = "urn:schemas-microsoft-com:unattend"
WCM_NS = "http://schemas.microsoft.com/WMIConfig/2002/State"
UNATTEND_RELATIVE_PATH = Path("Windows") / "Panther" / "unattend.xml"

MAX_USERNAME_LENGTH = 20
INVALID_USERNAME_CHARS = set('"/\\[]:;|=,+*?<>@')

COMPONENT_ATTRIBUTES = {
    "processorArchitecture": "amd64",
    "publicKeyToken": "31bf3856ad364e35",
    "language": "neutral",
    "versionScope": "nonSxS",
}

OOBE_SETTINGS = (
    ("HideEULAPage", "true"),
    ("HideOEMRegistrationScreen", "true"),
    ("HideOnlineAccountScreens", "true"),
    ("HideWirelessSetupInOOBE", "true"),
    ("HideLocalAccountScreen", "true"),
    ("ProtectYourPC", "3"),
)

log = LoggerFactory.for_image()

ET.register_namespace("", UNATTEND_NS)
ET.register_namespace("wcm", WCM_NS)


def default_username(environ: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """The invoking user: $SUDO_USER when run through sudo, else $USER."""
    environ = os.environ if environ is None else environ
    return environ.get("SUDO_USER") or environ.get("USER") or None


def validate_username(username: Optional[str]) -> str:
    """Check a Windows local account name.

    Raises:
        ValueError: If the name is empty, longer than 20 characters or uses
            a character Windows rejects
    """
    if not username or not username.strip():
        raise ValueError("Username must not be empty")
    if len(username) > MAX_USERNAME_LENGTH:
        raise ValueError(f"Username must be at most {MAX_USERNAME_LENGTH} characters: {username}")
    invalid = sorted(INVALID_USERNAME_CHARS.intersection(username))
    if invalid:
        raise ValueError(f"Username contains invalid characters {''.join(invalid)}: {username}")
    if username.endswith("."):
        raise ValueError(f"Username must not end with a period: {username}")
    return username


def _tag(name: str) -> str:
    return f"{{{UNATTEND_NS}}}{name}"


def _sub(parent: ET.Element, name: str, text: Optional[str] = None, /, **attrs) -> ET.Element:
    element = ET.SubElement(parent, _tag(name), attrs)
    if text is not None:
        element.text = text
    return element


def _component(settings: ET.Element, name: str) -> ET.Element:
    return _sub(settings, "component", name=name, **COMPONENT_ATTRIBUTES)


def _empty_password(parent: ET.Element) -> None:
    password = _sub(parent, "Password")
    _sub(password, "Value", "")
    _sub(password, "PlainText", "true")


def build_unattend(username: str) -> ET.ElementTree:
    """Build the answer file tree for a local admin account."""
    validate_username(username)
    root = ET.Element(_tag("unattend"))

    offline = _sub(root, "settings", **{"pass": "offlineServicing"})
    partition_manager = _component(offline, "Microsoft-Windows-PartitionManager")
    _sub(partition_manager, "SanPolicy", "4")

    oobe_pass = _sub(root, "settings", **{"pass": "oobeSystem"})
    shell = _component(oobe_pass, "Microsoft-Windows-Shell-Setup")

    oobe = _sub(shell, "OOBE")
    for name, value in OOBE_SETTINGS:
        _sub(oobe, name, value)

    accounts = _sub(_sub(shell, "UserAccounts"), "LocalAccounts")
    account = _sub(accounts, "LocalAccount", **{f"{{{WCM_NS}}}action": "add"})
    _sub(account, "Name", username)
    _sub(account, "DisplayName", username)
    _sub(account, "Group", "Administrators")
    _empty_password(account)

    autologon = _sub(shell, "AutoLogon")
    _sub(autologon, "Username", username)
    _sub(autologon, "Enabled", "true")
    _sub(autologon, "LogonCount", "1")
    _empty_password(autologon)

    tree = ET.ElementTree(root)
    ET.indent(tree, space="  ")
    return tree


def write_unattend(windows_root: str | Path, username: str) -> Path:
    """Write Windows/Panther/unattend.xml under the mounted Windows partition."""
    tree = build_unattend(username)
    destination = Path(windows_root) / UNATTEND_RELATIVE_PATH
    destination.parent.mkdir(parents=True, exist_ok=True)
    tree.write(destination, encoding="utf-8", xml_declaration=True)
    log.info(f"Wrote answer file for user {username} to {destination}")
    return destination
