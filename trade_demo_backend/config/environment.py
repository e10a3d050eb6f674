"""
Startup environment detection.
"""

from collections.abc import Mapping

ENVIRONMENT_KEYS = ("ENVIRONMENT", "APP_ENVIRONMENT")
DEVELOPMENT = "development"


def is_dev_mode(context: Mapping[str, str] | None) -> bool:
    """
    Check whether the startup context marks a development environment.

    Only an explicit ``ENVIRONMENT`` (or ``APP_ENVIRONMENT``) value of
    ``development`` counts; anything else, including an empty context,
    is treated as production.

    Example:
        is_dev_mode(os.environ)
    """
    if not context:
        return False

    for key in ENVIRONMENT_KEYS:
        value = context.get(key)
        if isinstance(value, str) and value.strip().lower() == DEVELOPMENT:
            return True

    return False
