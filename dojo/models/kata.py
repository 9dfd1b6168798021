"""Kata models. Rows of the katas table and validated write payloads."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from katalog.types import KATA_NAME_MAX_LENGTH, KATA_STYLE_MAX_LENGTH, Kata, is_valid_video_url


class KataRow(BaseModel):
    """Represents a row in the katas table."""

    id: int
    name: str
    description: str = ""
    style: str = ""
    image_urls: list[str] = Field(default_factory=list)
    video_urls: list[str] = Field(default_factory=list)
    sort_order: int = 0
    created_at: datetime | None = None

    def to_entity(self) -> Kata:
        return Kata(
            id=self.id,
            name=self.name,
            description=self.description,
            style=self.style,
            image_urls=list(self.image_urls),
            video_urls=list(self.video_urls),
            order=self.sort_order,
            created_at=self.created_at,
        )


class KataWrite(BaseModel):
    """
    Fields accepted by create/update. Unset fields are left alone on update.

    `order` maps to the sort_order column.
    """

    model_config = {"extra": "forbid"}

    name: str | None = Field(default=None, min_length=1, max_length=KATA_NAME_MAX_LENGTH)
    description: str | None = None
    style: str | None = Field(default=None, max_length=KATA_STYLE_MAX_LENGTH)
    image_urls: list[str] | None = None
    video_urls: list[str] | None = None
    order: int | None = Field(default=None, ge=0)

    @field_validator("video_urls")
    @classmethod
    def _check_video_urls(cls, urls: list[str] | None) -> list[str] | None:
        if urls is None:
            return urls
        for url in urls:
            if not is_valid_video_url(url):
                raise ValueError(f"Invalid video URL: {url}")
        return urls

    def columns(self) -> dict[str, object]:
        """Set fields keyed by column name."""
        values = self.model_dump(exclude_unset=True)
        if "order" in values:
            values["sort_order"] = values.pop("order")
        return values
