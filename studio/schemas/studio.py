from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class PacketDownloadIn(BaseModel):
    model_config = ConfigDict(extra="ignore")  # старые клиенты шлют universe_id и лишние поля

    collection_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("collection_id", "universe_id"),
    )
    tier: str | None = None  # нормализуется в public, если не распознан
    mode: str | None = None
    include_vault: bool = False
    override_token: str | None = None


class PageDownloadIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    collection_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("collection_id", "universe_id"),
    )
    page_type: str | None = None
    mode: str | None = None
    override_token: str | None = None


class SignedUrlOut(BaseModel):
    url: str


class ErrorOut(BaseModel):
    error: str


class PageAccessOut(BaseModel):
    id: str
    title: str
    page_type: str
    required_tier: str
    locked: bool
    preview_locked: bool


class AccessOverviewOut(BaseModel):
    collection_id: str
    viewer_tier: str
    preview_tier: str
    vault_allowed: bool
    vault_locked_count: int
    pages: list[PageAccessOut]
