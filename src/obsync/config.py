"""Session configuration for obsync.

Reads GitHub repository settings from CLI args, environment variables,
.env files, and YAML config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    OBSYNC_OWNER: Repository owner (required)
    OBSYNC_REPO: Repository name (required)
    OBSYNC_TOKEN: Access token used as the credential (required)
    OBSYNC_BRANCH: Branch to sync with (optional, default: main)
    OBSYNC_API_URL: GitHub API base URL (optional, default: https://api.github.com)
    OBSYNC_VAULT: Local vault directory (optional, default: .)
    OBSYNC_STATE_FILE: Engine state file (optional, default: .obsync/state.json)
    OBSYNC_PUSH_DELAY: Seconds of quiet before a push (optional, default: 3.0)
    OBSYNC_INSECURE: Skip SSL verification (optional, default: false)
    OBSYNC_MAX_PARALLEL_REQUESTS: Max parallel GitHub requests (optional, default: 5)
"""

import logging
import os
from dataclasses import dataclass
from urllib.parse import urlparse

logger = logging.getLogger(__name__)


@dataclass
class Config:
    owner: str
    repo: str
    credential: str
    branch: str = "main"
    api_url: str = "https://api.github.com"
    vault_root: str = "."
    state_file: str = ".obsync/state.json"
    push_delay: float = 3.0
    insecure: bool = False
    debug: bool = False
    max_parallel_requests: int = 5


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ValueError if invalid.

    Missing repository coordinates or credential are the one fatal
    condition of a sync session: no session starts without them.

    Args:
        config: Config instance to validate.

    Raises:
        ValueError: If the API URL is malformed or a required setting is empty.
    """
    config.api_url = config.api_url.strip()

    if not config.api_url.startswith(("http://", "https://")):
        raise ValueError(
            f"Invalid API URL '{config.api_url}': must start with http:// or https://"
        )

    parsed = urlparse(config.api_url)
    if not parsed.hostname:
        raise ValueError(
            f"Invalid API URL '{config.api_url}': URL must include a hostname"
        )

    config.api_url = config.api_url.removesuffix("/")

    if not config.owner.strip():
        raise ValueError(
            "Repository owner cannot be empty. Set OBSYNC_OWNER environment variable."
        )

    if not config.repo.strip():
        raise ValueError(
            "Repository name cannot be empty. Set OBSYNC_REPO environment variable."
        )

    if not config.credential.strip():
        raise ValueError(
            "Credential cannot be empty. Set OBSYNC_TOKEN environment variable."
        )

    if not config.branch.strip():
        raise ValueError(
            "Branch cannot be empty. Set OBSYNC_BRANCH or remove it to use 'main'."
        )

    if config.push_delay < 0:
        raise ValueError(
            f"Invalid push delay {config.push_delay}: must not be negative"
        )

    if config.insecure:
        logger.warning(
            "WARNING: SSL verification disabled (insecure=True). Use only for development."
        )


def _required(
    value: str | None, env_key: str, yaml_value: str | None, what: str, flag: str
) -> str:
    resolved = value or os.getenv(env_key) or yaml_value
    if not resolved:
        raise ValueError(
            f"{what} not found. Set {env_key} environment variable, "
            f"pass {flag} CLI argument, or add it to config.yml."
        )
    return resolved.strip()


def load_config(
    owner: str | None = None,
    repo: str | None = None,
    credential: str | None = None,
    branch: str | None = None,
    vault_root: str | None = None,
    insecure: bool = False,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        owner: Override repository owner.
        repo: Override repository name.
        credential: Override access token.
        branch: Override branch.
        vault_root: Override vault directory.
        insecure: Skip SSL verification (CLI flag).
        debug: Enable debug logging (CLI flag).
        yaml_fallbacks: Flat dict of values from the YAML ``github`` and
            ``vault`` sections.  Used as fallback when CLI arg and env
            var are both unset.

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If required config (owner, repo, credential) is missing
            after checking all sources, or a value is malformed.
    """
    fb = yaml_fallbacks or {}

    # --- Required string fields: CLI > env > YAML > error ---

    final_owner = _required(
        owner, "OBSYNC_OWNER", fb.get("owner"), "Repository owner", "--owner"
    )
    final_repo = _required(
        repo, "OBSYNC_REPO", fb.get("repo"), "Repository name", "--repo"
    )
    final_credential = _required(
        credential, "OBSYNC_TOKEN", fb.get("credential"), "Credential", "--token"
    )

    # --- Optional string fields: CLI > env > YAML > default ---

    final_branch = (
        branch or os.getenv("OBSYNC_BRANCH") or fb.get("branch") or "main"
    )
    final_api_url = (
        os.getenv("OBSYNC_API_URL")
        or fb.get("api_url")
        or "https://api.github.com"
    )
    final_vault = (
        vault_root or os.getenv("OBSYNC_VAULT") or fb.get("root") or "."
    )
    final_state_file = (
        os.getenv("OBSYNC_STATE_FILE")
        or fb.get("state_file")
        or ".obsync/state.json"
    )

    # --- Boolean fields: CLI > env > YAML > default ---

    def get_bool_env(key: str) -> bool | None:
        """Return True/False from env var, or None if unset."""
        val = os.getenv(key)
        if val is None:
            return None
        return val.lower() in ("true", "1", "yes", "on")

    if insecure:
        final_insecure = True
    else:
        env_insecure = get_bool_env("OBSYNC_INSECURE")
        if env_insecure is not None:
            final_insecure = env_insecure
        else:
            final_insecure = bool(fb.get("insecure", False))

    if debug:
        final_debug = True
    else:
        env_debug = get_bool_env("OBSYNC_DEBUG")
        if env_debug is not None:
            final_debug = env_debug
        else:
            final_debug = bool(fb.get("debug", False))

    # --- Numeric fields: env > YAML > default ---

    push_delay_raw = os.getenv("OBSYNC_PUSH_DELAY")
    if push_delay_raw is not None:
        try:
            final_push_delay = float(push_delay_raw)
        except ValueError:
            raise ValueError(
                f"Invalid OBSYNC_PUSH_DELAY '{push_delay_raw}': must be a number of seconds"
            ) from None
    elif "push_delay" in fb:
        final_push_delay = float(fb["push_delay"])
    else:
        final_push_delay = 3.0

    max_parallel_raw = os.getenv("OBSYNC_MAX_PARALLEL_REQUESTS")
    if max_parallel_raw is not None:
        try:
            final_max_parallel = int(max_parallel_raw)
        except ValueError:
            raise ValueError(
                f"Invalid OBSYNC_MAX_PARALLEL_REQUESTS '{max_parallel_raw}': must be a number between 1 and 100"
            ) from None
        if not (1 <= final_max_parallel <= 100):
            raise ValueError(
                f"Invalid OBSYNC_MAX_PARALLEL_REQUESTS '{max_parallel_raw}': must be a number between 1 and 100"
            )
    elif "max_parallel_requests" in fb:
        final_max_parallel = int(fb["max_parallel_requests"])
    else:
        final_max_parallel = 5

    config = Config(
        owner=final_owner,
        repo=final_repo,
        credential=final_credential,
        branch=final_branch.strip(),
        api_url=final_api_url,
        vault_root=final_vault,
        state_file=final_state_file,
        push_delay=final_push_delay,
        insecure=final_insecure,
        debug=final_debug,
        max_parallel_requests=final_max_parallel,
    )

    validate_config(config)

    return config
