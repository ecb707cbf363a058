from pathlib import Path
import json
import os
from typing import Dict, Any

# Package defaults (bundled with code)
PACKAGE_CONFIG_DIR = Path(__file__).parent / "defaults"

# User configs (in project root, gitignored)
PROJECT_ROOT = Path(__file__).parent.parent.parent.parent
USER_CONFIG_DIR = PROJECT_ROOT / "config"

# Environment variable -> ledger config key
ENV_OVERRIDES = {
    "FUND_LEDGER_BACKEND": "backend",
    "FUND_LEDGER_DB_PATH": "db_path",
    "FUND_LEDGER_SCRIPT_URL": "script_url",
}

class ConfigLoader:
    """Load configuration with user overrides"""

    @staticmethod
    def load_config(config_name: str) -> Dict[str, Any]:
        """
        Load config with fallback: user config -> default config

        Args:
            config_name: Name of the config file (e.g., 'ledger.json')

        Raises:
            FileNotFoundError: If no config file was found

        Returns:
            Parsed JSON configuration
        """
        user_config_path = USER_CONFIG_DIR / config_name
        if user_config_path.exists():
            with open(user_config_path, encoding="utf-8") as f:
                return json.load(f)

        default_config_path = PACKAGE_CONFIG_DIR / config_name
        if default_config_path.exists():
            with open(default_config_path, encoding="utf-8") as f:
                return json.load(f)

        raise FileNotFoundError(
            f"Config file '{config_name}' not found in:\n"
            f" - {user_config_path}\n"
            f" - {default_config_path}"
        )

    @staticmethod
    def load_ledger_config() -> Dict[str, Any]:
        """
        Load the ledger settings (backend, database path, endpoint URL...).

        Environment variables win over both config files, so a deployment
        can pick its backend without editing JSON.
        """
        config = ConfigLoader.load_config('ledger.json')
        for env_name, key in ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value:
                config[key] = value
        return config
