"""
Placeholder substitution for loaded configuration.

Secrets such as ``protection.secret`` or the PGP passphrase are normally
kept out of the YAML and supplied as ``${VAR}`` references.
"""

import os
import re
from typing import Any

from maskstream.exceptions import ConfigurationError

# ${NAME} or ${NAME:-fallback}
_ENV_REF = re.compile(r"\$\{(?P<name>[A-Za-z_][A-Za-z0-9_]*)(?::-(?P<default>[^}]*))?\}")


def resolve_config(config_data: dict[str, Any], env: str = "dev", *, strict: bool = False) -> dict[str, Any]:
    """
    Return a copy of ``config_data`` with placeholders substituted.

    ``${NAME}`` is replaced from the process environment and ``${NAME:-x}``
    falls back to ``x``. A reference with no value and no fallback is left
    untouched, or reported when ``strict`` is set. ``{env}`` becomes the
    active environment name.

    Raises:
        ConfigurationError: In strict mode, listing every unset variable
            with the config path that referenced it
    """
    missing: list[str] = []
    resolved = _substitute(config_data, env, "", missing)
    if strict and missing:
        raise ConfigurationError(
            "Unset environment variable(s): " + ", ".join(missing),
            details={"missing": missing},
        )
    return resolved  # type: ignore[no-any-return]


def _substitute(value: Any, env: str, path: str, missing: list[str]) -> Any:
    if isinstance(value, dict):
        return {k: _substitute(v, env, f"{path}.{k}" if path else str(k), missing) for k, v in value.items()}
    if isinstance(value, list):
        return [_substitute(item, env, f"{path}[{i}]", missing) for i, item in enumerate(value)]
    if not isinstance(value, str):
        return value

    def lookup(match: re.Match) -> str:
        name, default = match.group("name"), match.group("default")
        if name in os.environ:
            return os.environ[name]
        if default is not None:
            return default
        missing.append(f"{name} ({path})")
        return match.group(0)

    return _ENV_REF.sub(lookup, value).replace("{env}", env)
