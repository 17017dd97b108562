"""ID factory for deferred values.

Every container gets a UUID v4 string so diagnostics about it can be
correlated across log lines.
"""

from __future__ import annotations

import uuid


def new_id() -> str:
    """Generate a new UUID v4 string."""
    return str(uuid.uuid4())
