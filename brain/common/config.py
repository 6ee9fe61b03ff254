"""
Configuration Management for Telegram Brain

Loads configuration from ~/.brain/config.json and environment variables.
"""

import os
import json
import logging
from pathlib import Path
from dataclasses import dataclass, field

logger = logging.getLogger("brain.common.config")

# Default config paths
CONFIG_DIR = Path.home() / ".brain"
CONFIG_PATH = CONFIG_DIR / "config.json"
LOGS_DIR = CONFIG_DIR / "logs"
DEFAULT_VAULT_DIR = CONFIG_DIR / "vault"

# Well-known blob keys inside the vault
VAULT_CONTEXT_KEY = "_vault_context.md"
CAPTURE_LOG_KEY = "0-Inbox/_capture_log.jsonl"


@dataclass
class LLMConfig:
    """LLM provider configuration shared by classification and /ask"""
    provider: str = "google"
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-haiku-4-5-20251001"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    google_api_key: str = ""
    google_model: str = "gemini-2.0-flash"

    @property
    def model(self) -> str:
        """Model name for the active provider"""
        return {
            "anthropic": self.anthropic_model,
            "openai": self.openai_model,
            "google": self.google_model,
        }.get(self.provider, "")

    @property
    def api_key(self) -> str:
        """API key for the active provider"""
        return {
            "anthropic": self.anthropic_api_key,
            "openai": self.openai_api_key,
            "google": self.google_api_key,
        }.get(self.provider, "")


@dataclass
class TelegramConfig:
    """Telegram bot configuration"""
    bot_token: str = ""
    webhook_secret: str = ""
    allowed_user_id: str = ""
    webhook_port: int = 8080


@dataclass
class StorageConfig:
    """Vault storage configuration"""
    vault_dir: str = str(DEFAULT_VAULT_DIR)
    context_key: str = VAULT_CONTEXT_KEY
    audit_log_key: str = CAPTURE_LOG_KEY


@dataclass
class SyncConfig:
    """GitHub sync configuration (repository_dispatch + digest workflow)"""
    github_token: str = ""
    github_repo: str = ""
    digest_workflow: str = "daily-digest.yml"
    digest_ref: str = "main"

    @property
    def enabled(self) -> bool:
        return bool(self.github_token and self.github_repo)


@dataclass
class BrainConfig:
    """Main Telegram Brain configuration"""
    llm: LLMConfig = field(default_factory=LLMConfig)
    telegram: TelegramConfig = field(default_factory=TelegramConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)
    _env_sourced_keys: set = field(default_factory=set, repr=False)


def _parse_llm_config(data: dict) -> LLMConfig:
    """Parse llm section from config dict"""
    llm_data = data.get("llm", {})
    return LLMConfig(
        provider=llm_data.get("provider", "google"),
        anthropic_api_key=llm_data.get("anthropic_api_key", ""),
        anthropic_model=llm_data.get("anthropic_model", "claude-haiku-4-5-20251001"),
        openai_api_key=llm_data.get("openai_api_key", ""),
        openai_model=llm_data.get("openai_model", "gpt-4o-mini"),
        google_api_key=llm_data.get("google_api_key", ""),
        google_model=llm_data.get("google_model", "gemini-2.0-flash"),
    )


def _parse_telegram_config(data: dict) -> TelegramConfig:
    """Parse telegram section from config dict"""
    telegram_data = data.get("telegram", {})
    return TelegramConfig(
        bot_token=telegram_data.get("bot_token", ""),
        webhook_secret=telegram_data.get("webhook_secret", ""),
        allowed_user_id=str(telegram_data.get("allowed_user_id", "")),
        webhook_port=telegram_data.get("webhook_port", 8080),
    )


def _parse_storage_config(data: dict) -> StorageConfig:
    """Parse storage section from config dict"""
    storage_data = data.get("storage", {})
    return StorageConfig(
        vault_dir=storage_data.get("vault_dir", str(DEFAULT_VAULT_DIR)),
        context_key=storage_data.get("context_key", VAULT_CONTEXT_KEY),
        audit_log_key=storage_data.get("audit_log_key", CAPTURE_LOG_KEY),
    )


def _parse_sync_config(data: dict) -> SyncConfig:
    """Parse sync section from config dict"""
    sync_data = data.get("sync", {})
    return SyncConfig(
        github_token=sync_data.get("github_token", ""),
        github_repo=sync_data.get("github_repo", ""),
        digest_workflow=sync_data.get("digest_workflow", "daily-digest.yml"),
        digest_ref=sync_data.get("digest_ref", "main"),
    )


def load_config() -> BrainConfig:
    """
    Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables
    2. Config file (~/.brain/config.json)
    3. Default values
    """
    config = BrainConfig()

    # Load from config file if exists
    if CONFIG_PATH.exists():
        try:
            with open(CONFIG_PATH) as f:
                data = json.load(f)

            config.llm = _parse_llm_config(data)
            config.telegram = _parse_telegram_config(data)
            config.storage = _parse_storage_config(data)
            config.sync = _parse_sync_config(data)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning("Failed to load config file: %s", e)

    # LLM env var overrides (track env-sourced keys)
    _env_llm_map = {
        "ANTHROPIC_API_KEY": "anthropic_api_key",
        "OPENAI_API_KEY": "openai_api_key",
        "GOOGLE_API_KEY": "google_api_key",
        "GEMINI_API_KEY": "google_api_key",
        "BRAIN_LLM_PROVIDER": "provider",
    }
    for env_var, attr in _env_llm_map.items():
        val = os.getenv(env_var)
        if val:
            setattr(config.llm, attr, val)
            config._env_sourced_keys.add(attr)

    # MODEL applies to whichever provider is active
    if os.getenv("MODEL"):
        setattr(config.llm, f"{config.llm.provider}_model", os.getenv("MODEL"))

    _env_telegram_map = {
        "TELEGRAM_BOT_TOKEN": "bot_token",
        "WEBHOOK_SECRET": "webhook_secret",
        "ALLOWED_USER_ID": "allowed_user_id",
    }
    for env_var, attr in _env_telegram_map.items():
        val = os.getenv(env_var)
        if val:
            setattr(config.telegram, attr, val)
            config._env_sourced_keys.add(attr)

    if os.getenv("BRAIN_PORT"):
        config.telegram.webhook_port = int(os.getenv("BRAIN_PORT"))
    if os.getenv("BRAIN_VAULT_DIR"):
        config.storage.vault_dir = os.getenv("BRAIN_VAULT_DIR")

    if os.getenv("GITHUB_TOKEN"):
        config.sync.github_token = os.getenv("GITHUB_TOKEN")
        config._env_sourced_keys.add("github_token")
    if os.getenv("GITHUB_REPO"):
        config.sync.github_repo = os.getenv("GITHUB_REPO")

    return config


def save_config(config: BrainConfig) -> None:
    """Save configuration to file.

    Secret fields that were sourced from environment variables are written
    as empty strings so that secrets are not persisted to disk.
    """
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)

    env_sourced = getattr(config, "_env_sourced_keys", set())

    def _secret(attr: str, value: str) -> str:
        return "" if attr in env_sourced else value

    data = {
        "llm": {
            "provider": config.llm.provider,
            "anthropic_api_key": _secret("anthropic_api_key", config.llm.anthropic_api_key),
            "anthropic_model": config.llm.anthropic_model,
            "openai_api_key": _secret("openai_api_key", config.llm.openai_api_key),
            "openai_model": config.llm.openai_model,
            "google_api_key": _secret("google_api_key", config.llm.google_api_key),
            "google_model": config.llm.google_model,
        },
        "telegram": {
            "bot_token": _secret("bot_token", config.telegram.bot_token),
            "webhook_secret": _secret("webhook_secret", config.telegram.webhook_secret),
            "allowed_user_id": config.telegram.allowed_user_id,
            "webhook_port": config.telegram.webhook_port,
        },
        "storage": {
            "vault_dir": config.storage.vault_dir,
            "context_key": config.storage.context_key,
            "audit_log_key": config.storage.audit_log_key,
        },
        "sync": {
            "github_token": _secret("github_token", config.sync.github_token),
            "github_repo": config.sync.github_repo,
            "digest_workflow": config.sync.digest_workflow,
            "digest_ref": config.sync.digest_ref,
        },
    }

    with open(CONFIG_PATH, "w") as f:
        json.dump(data, f, indent=2)

    # Set secure permissions
    CONFIG_PATH.chmod(0o600)


def ensure_directories() -> None:
    """Ensure required directories exist"""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    LOGS_DIR.mkdir(parents=True, exist_ok=True)
