"""Credential handling for fetching the boilerplate and pushing the fork."""

from __future__ import annotations

import subprocess
from typing import TYPE_CHECKING
from urllib.parse import urlparse

import pygit2

from forksync.core.logging import get_logger

if TYPE_CHECKING:
    from pygit2.enums import CredentialType

log = get_logger("git.credentials")


class SystemCredentialCallback(pygit2.RemoteCallbacks):
    """
    RemoteCallbacks that defers to what the user's git already knows.

    - SSH via the running SSH agent
    - HTTPS via ``git credential fill`` (credential manager or store helpers)
    """

    def credentials(  # type: ignore[override]
        self,
        url: str,
        username_from_url: str | None,
        allowed_types: CredentialType,
    ) -> pygit2.Username | pygit2.UserPass | pygit2.Keypair | None:
        if allowed_types & pygit2.enums.CredentialType.SSH_KEY:
            return pygit2.KeypairFromAgent(username_from_url or "git")

        if allowed_types & pygit2.enums.CredentialType.USERPASS_PLAINTEXT:
            creds = self._query_credential_helper(url)
            if creds:
                return pygit2.UserPass(creds["username"], creds["password"])

        return None

    def _query_credential_helper(self, url: str) -> dict[str, str] | None:
        parsed = urlparse(url)
        input_lines = [
            f"protocol={parsed.scheme}",
            f"host={parsed.hostname or parsed.netloc}",
        ]
        if parsed.port is not None:
            input_lines.append(f"port={parsed.port}")
        if parsed.path:
            input_lines.append(f"path={parsed.path.lstrip('/')}")
        input_lines.append("")

        try:
            result = subprocess.run(
                ["git", "credential", "fill"],
                input="\n".join(input_lines),
                capture_output=True,
                text=True,
                timeout=30,
                check=False,
            )
        except (subprocess.TimeoutExpired, FileNotFoundError, OSError) as e:
            log.debug("credential_helper_unavailable", host=parsed.hostname, error=str(e))
            return None
        if result.returncode != 0:
            return None

        creds: dict[str, str] = {}
        for line in result.stdout.strip().split("\n"):
            if "=" in line:
                key, value = line.split("=", 1)
                creds[key] = value
        if "username" in creds and "password" in creds:
            return creds
        return None


def get_default_callbacks() -> SystemCredentialCallback:
    """Get default remote callbacks with system credential support."""
    return SystemCredentialCallback()
