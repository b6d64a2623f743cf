"""
Configuration settings management
Secrets and endpoints come from environment variables,
source and filter settings from a YAML file
"""
import os
from pathlib import Path
from typing import Callable, Dict, List, Optional
from functools import lru_cache

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError


class ConfigurationError(ValueError):
    """Raised when a required setting is missing or the config file is unusable"""
    pass


# Levels loguru knows out of the box
LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


def _env_number(name: str, default: str, cast: Callable):
    value = os.getenv(name, default)
    try:
        return cast(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got '{value}'")


class Settings:
    """Application settings loaded from environment variables"""

    # LLM configuration
    llm_base_url: str = ""
    llm_api_key: str
    llm_timeout: float = 120.0
    llm_max_tokens: int = 4096

    # Notion configuration
    notion_token: str
    notion_database_id: str
    # Notion property name mappings (optional, for custom property names)
    notion_property_title: str = "Title"
    notion_property_source: str = "Source"
    notion_property_category: str = "Category"
    notion_property_pain_point: str = "Pain Point"
    notion_property_idea: str = "Idea"
    notion_property_potential: str = "Potential"
    notion_property_url: str = "Original URL"
    notion_property_collected_at: str = "Collected At"

    # Runtime
    proxy_url: str = ""
    config_path: str = ""
    log_level: str = "INFO"
    log_file: str = ""

    def __init__(self):
        """Load settings from environment variables"""
        # Load .env file from project root
        env_path = Path(__file__).parent.parent.parent / '.env'
        if env_path.exists():
            load_dotenv(env_path)
        else:
            load_dotenv()

        # LLM settings
        self.llm_base_url = os.getenv('BASE_URL', '')
        self.llm_api_key = os.getenv('OPENAI_API_KEY') or os.getenv('API_KEY', '')
        self.llm_timeout = _env_number('LLM_TIMEOUT', '120.0', float)
        self.llm_max_tokens = _env_number('LLM_MAX_TOKENS', '4096', int)

        # Normalize base_url - the OpenAI client expects the /v1 suffix
        if self.llm_base_url:
            self.llm_base_url = self.llm_base_url.rstrip('/')
            if not self.llm_base_url.endswith('/v1'):
                self.llm_base_url = f"{self.llm_base_url}/v1"

        # Notion settings
        self.notion_token = os.getenv('NOTION_TOKEN') or os.getenv('NOTION_API_KEY', '')
        self.notion_database_id = os.getenv('NOTION_DATABASE_ID', '')
        self.notion_property_title = os.getenv('NOTION_PROPERTY_TITLE', 'Title')
        self.notion_property_source = os.getenv('NOTION_PROPERTY_SOURCE', 'Source')
        self.notion_property_category = os.getenv('NOTION_PROPERTY_CATEGORY', 'Category')
        self.notion_property_pain_point = os.getenv('NOTION_PROPERTY_PAIN_POINT', 'Pain Point')
        self.notion_property_idea = os.getenv('NOTION_PROPERTY_IDEA', 'Idea')
        self.notion_property_potential = os.getenv('NOTION_PROPERTY_POTENTIAL', 'Potential')
        self.notion_property_url = os.getenv('NOTION_PROPERTY_URL', 'Original URL')
        self.notion_property_collected_at = os.getenv('NOTION_PROPERTY_COLLECTED_AT', 'Collected At')

        self.proxy_url = os.getenv('PROXY_URL') or os.getenv('ALL_PROXY') or os.getenv('all_proxy', '')
        self.config_path = os.getenv('IDEA_HUNTER_CONFIG', '')
        self.log_level = os.getenv('LOG_LEVEL', 'INFO').upper()
        if self.log_level not in LOG_LEVELS:
            raise ConfigurationError(
                f"Invalid LOG_LEVEL '{self.log_level}', expected one of: {', '.join(LOG_LEVELS)}"
            )
        self.log_file = os.getenv('LOG_FILE', '')

    def require(self, *names: str):
        """
        Validate that the given settings are present

        Args:
            names: Environment variable names to check

        Raises:
            ConfigurationError: If any of them is empty
        """
        values = {
            'OPENAI_API_KEY': self.llm_api_key,
            'NOTION_TOKEN': self.notion_token,
            'NOTION_DATABASE_ID': self.notion_database_id,
        }

        missing = [name for name in names if not values.get(name)]
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}\n"
                f"Please set them in .env file or environment variables"
            )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


class CollectionConfig(BaseModel):
    max_items_per_source: int = Field(default=30, ge=0)
    dedup_days: int = Field(default=7, ge=0)


class FeedSourceConfig(BaseModel):
    enabled: bool = False
    feeds: List[str] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)


class HackerNewsConfig(BaseModel):
    enabled: bool = False
    story_types: List[str] = Field(default_factory=lambda: ["showstories", "askstories"])
    keywords: List[str] = Field(default_factory=list)


class XConfig(BaseModel):
    enabled: bool = False
    search_queries: List[str] = Field(default_factory=list)
    max_scroll: int = 3


class InstagramConfig(BaseModel):
    enabled: bool = False
    hashtags: List[str] = Field(default_factory=list)
    max_posts: int = 10


class TikTokConfig(BaseModel):
    enabled: bool = False
    search_queries: List[str] = Field(default_factory=list)
    max_videos: int = 10


class AnalysisConfig(BaseModel):
    model: str = "gpt-4o-mini"
    batch_size: int = Field(default=20, ge=1)
    japan_focus: bool = True


class FilterConfig(BaseModel):
    exclude_keywords: List[str] = Field(default_factory=list)
    min_engagement: int = Field(default=0, ge=0)
    # Many sources cannot report engagement; 0 means "unknown" for them
    exempt_unknown_engagement: bool = True


class RunConfig(BaseModel):
    fail_on_partial_failure: bool = False


class AppConfig(BaseModel):
    """Source, filter and analysis settings read from config.yaml"""
    collection: CollectionConfig = Field(default_factory=CollectionConfig)
    rss: Dict[str, FeedSourceConfig] = Field(default_factory=dict)
    hackernews: HackerNewsConfig = Field(default_factory=HackerNewsConfig)
    reddit: FeedSourceConfig = Field(default_factory=FeedSourceConfig)
    x: XConfig = Field(default_factory=XConfig)
    instagram: InstagramConfig = Field(default_factory=InstagramConfig)
    tiktok: TikTokConfig = Field(default_factory=TikTokConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    filters: FilterConfig = Field(default_factory=FilterConfig)
    run: RunConfig = Field(default_factory=RunConfig)


def load_config(path: Optional[str] = None, settings: Optional[Settings] = None) -> AppConfig:
    """
    Load and validate the YAML configuration file

    Args:
        path: Explicit path (if None, IDEA_HUNTER_CONFIG or ./config.yaml is used)
        settings: Application settings (if None, will load from environment)

    Returns:
        Validated AppConfig

    Raises:
        ConfigurationError: If the file is missing or invalid
    """
    if path is None:
        settings = settings or get_settings()
        path = settings.config_path or str(Path(__file__).parent.parent.parent / 'config.yaml')

    config_file = Path(path)
    if not config_file.exists():
        raise ConfigurationError(f"Config file not found: {config_file}")

    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            raw = yaml.safe_load(f) or {}
        return AppConfig.model_validate(raw)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_file}: {e}")
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration in {config_file}:\n{e}")
