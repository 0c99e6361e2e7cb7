"""Configuration package for the AniDB metadata provider."""

from .settings import Settings, TitleLanguageOption, get_settings

__all__ = ["Settings", "TitleLanguageOption", "get_settings"]
