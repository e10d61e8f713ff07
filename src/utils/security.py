from pathlib import Path
import re
from typing import List
import structlog

logger = structlog.get_logger()

# Session ids become file names; keep them to a conservative character set
SESSION_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,127}$")


class SecurityError(Exception):
    """Base class for security-related errors."""

    pass


class PathSanitizer:
    """Secure path validation for result files"""

    def __init__(self, allowed_bases: List[Path]):
        """Initialize with allowed base directories"""
        self.allowed_bases = [p.resolve() for p in allowed_bases]

    def safe_path(self, base_dir: Path, user_input: str) -> Path:
        """Get safe path within base directory

        Prevents:
        - Directory traversal (../)
        - Absolute path injection
        - Symlinks pointing outside the base

        Raises:
            SecurityError: If path is outside base_dir
        """
        base_dir = base_dir.resolve()

        if not any(
            base_dir == allowed or base_dir.is_relative_to(allowed)
            for allowed in self.allowed_bases
        ):
            raise SecurityError(f"Base directory not in allowed list: {base_dir}")

        safe_input = user_input.replace("\0", "")
        requested = (base_dir / safe_input).resolve()

        try:
            requested.relative_to(base_dir)
        except ValueError:
            logger.warning(
                "path_traversal_blocked",
                base_dir=str(base_dir),
                user_input=user_input,
                resolved=str(requested),
            )
            raise SecurityError(f"Path traversal attempt detected: {user_input}")

        return requested


def validate_session_id(session_id: str) -> str:
    """Return ``session_id`` if it is safe to use as a file name.

    Raises:
        SecurityError: If the id contains path separators or other
            characters outside [A-Za-z0-9._-]
    """
    if not SESSION_ID_PATTERN.match(session_id or "") or ".." in session_id:
        logger.warning("session_id_rejected", session_id=session_id)
        raise SecurityError(f"Invalid session id: {session_id!r}")
    return session_id
