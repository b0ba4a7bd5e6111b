from pydantic import BaseModel, ConfigDict, Field


class ProjectRules(BaseModel):
    slug: str
    rules_version: str


class ObjectStoreRules(BaseModel):
    public_key_env: str = "IMAGEKIT_PUBLIC_KEY"
    private_key_env: str = "IMAGEKIT_PRIVATE_KEY"
    url_endpoint_env: str = "IMAGEKIT_URL_ENDPOINT"
    upload_url: str = "https://upload.imagekit.io/api/v1/files/upload"
    files_api_url: str = "https://api.imagekit.io/v1/files"
    system_tag: str = "profile_system"
    delete_pruned_files: bool = True

class UploadsRules(BaseModel):
    max_file_size_bytes: int = Field(default=10_485_760, gt=0)
    allowed_content_types: list[str] = Field(
        default_factory=lambda: [
            "image/jpeg",
            "image/png",
            "image/jpg",
            "image/gif",
            "image/webp",
        ],
        min_length=1,
    )

class CredentialsRules(BaseModel):
    ttl_seconds: int = Field(default=3600, gt=0)

class TransferRules(BaseModel):
    timeout_seconds: float = Field(default=120.0, gt=0)
    chunk_size_bytes: int = Field(default=64 * 1024, gt=0)

class HistoryRules(BaseModel):
    max_retained: int = Field(default=3, ge=1)

class DerivedUrlRules(BaseModel):
    quality: str = "80"
    output_format: str = Field(default="webp", alias="format")

    model_config = ConfigDict(populate_by_name=True)

class OpsRules(BaseModel):
    data_dir: str = "./data"
    migrations_dir: str = "migrations"
    required_env: list[str] = Field(default_factory=list)
    log_level: str = "INFO"


class Rules(BaseModel):
    project: ProjectRules
    object_store: ObjectStoreRules = Field(default_factory=ObjectStoreRules)
    uploads: UploadsRules = Field(default_factory=UploadsRules)
    credentials: CredentialsRules = Field(default_factory=CredentialsRules)
    transfer: TransferRules = Field(default_factory=TransferRules)
    history: HistoryRules = Field(default_factory=HistoryRules)
    derived_urls: DerivedUrlRules = Field(default_factory=DerivedUrlRules)
    ops: OpsRules = Field(default_factory=OpsRules)
