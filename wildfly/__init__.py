try:
    import os
    from dotenv import load_dotenv, find_dotenv

    env_file = os.environ.get("ENV_FILE", ".env")
    path = find_dotenv(filename=env_file, raise_error_if_not_found=True)
    print(f"Loading environment variables from {path}")
    load_dotenv(dotenv_path=path)

except IOError:
    # No file to set environment variables
    pass

# Handlers read settings at import, so they load after the environment  # noqa: E402
from wildfly.handlers import (  # noqa: E402
    probes,
    service,
    wildflyappserver,
)

__all__ = [
    "probes",
    "service",
    "wildflyappserver",
]

__version__ = "0.1.0"
