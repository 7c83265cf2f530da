from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore',
    )

    # Style resolution
    font_family: str = Field(
        default='helvetica',
        validation_alias=AliasChoices('PDFBURN_FONT_FAMILY', 'FONT_FAMILY', 'font_family'),
    )

    # Raster resources referenced by image / signature annotations
    resource_timeout_seconds: int = 20
    max_resource_bytes: int = 25 * 1024 * 1024
    # Comma-separated list of reference schemes the loader may resolve.
    allowed_resource_schemes: str = 'data,http,https,file'
    resource_base_dir: Path | None = None

    # Input / output
    max_pdf_bytes: int = 100 * 1024 * 1024
    output_deflate: bool = True
    diagnostics_log_name: str = 'diagnostics.jsonl'

    log_level: str = Field(
        default='INFO',
        validation_alias=AliasChoices('PDFBURN_LOG_LEVEL', 'LOG_LEVEL', 'log_level'),
    )

    def resource_schemes(self) -> list[str]:
        schemes: list[str] = []
        for item in self.allowed_resource_schemes.split(','):
            normalized = item.strip().lower()
            if not normalized:
                continue
            schemes.append(normalized)
        return schemes


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
