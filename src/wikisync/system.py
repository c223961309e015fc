import asyncio
import logging
import socket
import subprocess
import sys

from .constants import APP_NAME

logger = logging.getLogger(APP_NAME)

PROBE_PORTS = (443, 22)


class SystemStrategy:
    """Platform hooks used by the engine; the base class only logs."""

    def notify(self, title: str, message: str) -> None:
        """Shows a desktop notification.

        Args:
            title (str): Usually the workspace or application name.
            message (str): The notification body text.
        """
        logger.info(f"NOTIFY {title}: {message}")


class MacOSStrategy(SystemStrategy):
    def notify(self, title: str, message: str) -> None:
        # AppleScript string literals cannot contain double quotes.
        clean_title = title.replace('"', "'")
        clean_msg = message.replace('"', "'")
        script = f'display notification "{clean_msg}" with title "{clean_title}"'
        try:
            subprocess.run(["osascript", "-e", script], stderr=subprocess.DEVNULL)
        except OSError as e:
            logger.debug(f"osascript notification failed: {e}")


class LinuxStrategy(SystemStrategy):
    def notify(self, title: str, message: str) -> None:
        """Uses `notify-send`, logging instead when it cannot be run."""
        try:
            subprocess.run(
                ["notify-send", "--app-name", APP_NAME, title, message],
                stderr=subprocess.DEVNULL,
            )
        except OSError:
            super().notify(title, message)


def get_system() -> SystemStrategy:
    """Picks the notification strategy for the running platform."""
    if sys.platform == "darwin":
        return MacOSStrategy()
    elif sys.platform.startswith("linux"):
        return LinuxStrategy()
    else:
        return SystemStrategy()


def get_remote_host(url: str) -> str | None:
    """Returns the host a workspace's git URL points at.

    Credentials embedded in HTTPS URLs are skipped. SCP-style SSH URLs
    (`git@host:owner/repo.git`) are understood too. Local paths have no host.
    """
    if "://" in url:
        netloc = url.split("://", 1)[1].split("/")[0]
        return netloc.rsplit("@", 1)[-1] or None
    if "@" in url:
        return url.split("@", 1)[1].split(":")[0] or None
    return None


def is_remote_reachable(host: str, timeout: float = 3.0) -> bool:
    """Tries a TCP connection to the HTTPS port, then the SSH port.

    Args:
        host (str): The git host to probe.
        timeout (float, optional): Seconds allowed per port. Defaults to 3.0.

    Returns:
        bool: True as soon as one port accepts a connection.
    """
    if not host:
        return False

    for port in PROBE_PORTS:
        try:
            with socket.create_connection((host, port), timeout=timeout):
                return True
        except OSError:
            continue
    return False


async def is_online(host: str, timeout_ms: int = 3000) -> bool:
    """Runs the reachability probe off the event loop."""
    return await asyncio.to_thread(is_remote_reachable, host, timeout_ms / 1000)
