"""Public identifiers for rows this service creates."""

import uuid

PROJECT_PREFIX = "proj_"
JOB_PREFIX = "job_"
CONNECTION_PREFIX = "conn_"


def generate_id(prefix: str) -> str:
    """Return ``prefix`` followed by 16 random hex characters."""
    if not prefix.endswith("_"):
        raise ValueError(f"id prefix must end with '_': {prefix!r}")
    return prefix + uuid.uuid4().hex[:16]


def new_project_id() -> str:
    return generate_id(PROJECT_PREFIX)


def new_job_id() -> str:
    return generate_id(JOB_PREFIX)


def new_connection_id() -> str:
    return generate_id(CONNECTION_PREFIX)
