"""Shared data models for images sync."""

from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, PositiveInt

from .exceptions import ConfigError

DEFAULT_FORMAT = "jpeg"
DEFAULT_QUALITY = 85


class ImageFormat(str, Enum):
    """Output formats the image transform can encode."""

    JPEG = "jpeg"
    JPG = "jpg"
    PNG = "png"
    WEBP = "webp"
    GIF = "gif"
    TIFF = "tiff"
    TIF = "tif"


class ByWidth(BaseModel):
    """Derivative identified by its width; height follows the aspect ratio."""

    model_config = ConfigDict(frozen=True)

    width: int

    @property
    def identity(self) -> str:
        return f"width:{self.width}"

    def satisfied_by(self, width: int, height: int) -> bool:
        return width == self.width


class ByHeight(BaseModel):
    """Derivative identified by its height; width follows the aspect ratio."""

    model_config = ConfigDict(frozen=True)

    height: int

    @property
    def identity(self) -> str:
        return f"height:{self.height}"

    def satisfied_by(self, width: int, height: int) -> bool:
        return height == self.height


class Both(BaseModel):
    """Derivative with both axes fixed. Identified by width."""

    model_config = ConfigDict(frozen=True)

    width: int
    height: int

    @property
    def identity(self) -> str:
        return f"width:{self.width}"

    def satisfied_by(self, width: int, height: int) -> bool:
        return width == self.width and height == self.height


DimensionConstraint = Union[ByWidth, ByHeight, Both]


class DerivativeSpec(BaseModel):
    """One configured output image: its dimensions, format and quality."""

    model_config = ConfigDict(populate_by_name=True)

    width: Optional[PositiveInt] = None
    height: Optional[PositiveInt] = None
    format: Optional[ImageFormat] = Field(
        default=None, validation_alias=AliasChoices("format", "ext")
    )
    quality: Optional[int] = Field(default=None, ge=1, le=100)

    @property
    def constraint(self) -> DimensionConstraint:
        """Tagged dimension constraint; raises ConfigError when neither axis is set."""
        if self.width is not None and self.height is not None:
            return Both(width=self.width, height=self.height)
        if self.width is not None:
            return ByWidth(width=self.width)
        if self.height is not None:
            return ByHeight(height=self.height)
        raise ConfigError(
            "Invalid output configuration: width or height must be specified"
        )

    @property
    def output_format(self) -> str:
        return self.format.value if self.format else DEFAULT_FORMAT

    @property
    def output_quality(self) -> int:
        return self.quality if self.quality is not None else DEFAULT_QUALITY


class InputImage(BaseModel):
    """A source image, one per distinct base key."""

    base_key: str
    key: str


class ExistingDerivative(BaseModel):
    """A derivative object already present under the output prefix."""

    key: str
    base_key: str
    actual_width: int
    actual_height: int
    matched_spec: Optional[DerivativeSpec] = None
    source_key: Optional[str] = None


class PendingMutation(BaseModel):
    """A derivative that should exist but does not."""

    base_key: str
    source_input_key: str
    spec: DerivativeSpec


class ReconciliationState(BaseModel):
    """Desired versus actual derivatives, rebuilt from a listing on every run."""

    input_images: Dict[str, InputImage] = Field(default_factory=dict)
    existing_derivatives: Dict[str, List[ExistingDerivative]] = Field(
        default_factory=dict
    )
    pending_mutations: Dict[str, List[PendingMutation]] = Field(default_factory=dict)
    orphan_keys: List[str] = Field(default_factory=list)
    inconsistent_base_keys: List[str] = Field(default_factory=list)

    @property
    def pending_count(self) -> int:
        return sum(len(mutations) for mutations in self.pending_mutations.values())

    @property
    def existing_count(self) -> int:
        return sum(len(group) for group in self.existing_derivatives.values())


class JobState(str, Enum):
    """Lifecycle of one base key's creation job."""

    PENDING = "pending"
    DOWNLOADING = "downloading"
    DOWNLOAD_FAILED = "download_failed"
    TRANSFORM_FAILED = "transform_failed"
    TRANSFORMED = "transformed"
    UPLOADING = "uploading"
    DONE = "done"
    PARTIAL_FAILURE = "partial_failure"


class CreationResult(BaseModel):
    """Result of creating the derivatives for a single base key."""

    base_key: str
    source_key: str = ""
    state: JobState = JobState.PENDING
    requested: int = 0
    created_keys: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)

    @property
    def failed(self) -> int:
        return self.requested - len(self.created_keys)


class DeletionResult(BaseModel):
    """Result of deleting a single object."""

    key: str
    success: bool = False
    error: str = ""


class ExecutionReport(BaseModel):
    """Summary of a creation pass and a deletion pass."""

    creation_results: List[CreationResult] = Field(default_factory=list)
    deletion_results: List[DeletionResult] = Field(default_factory=list)

    @property
    def created(self) -> int:
        return sum(len(result.created_keys) for result in self.creation_results)

    @property
    def failed(self) -> int:
        return sum(result.failed for result in self.creation_results)

    @property
    def skipped_groups(self) -> int:
        return sum(
            1
            for result in self.creation_results
            if result.state in (JobState.DOWNLOAD_FAILED, JobState.TRANSFORM_FAILED)
        )

    @property
    def deleted(self) -> int:
        return sum(1 for result in self.deletion_results if result.success)

    @property
    def failed_deletes(self) -> int:
        return sum(1 for result in self.deletion_results if not result.success)


def _normalize_prefix(prefix: str) -> str:
    prefix = prefix.strip("/")
    return f"{prefix}/" if prefix else ""


class SyncConfig(BaseModel):
    """Input/output prefixes and the derivative specs to maintain."""

    model_config = ConfigDict(populate_by_name=True)

    input_path: str = Field(validation_alias=AliasChoices("input_path", "inputPath"))
    output_path: str = Field(
        validation_alias=AliasChoices("output_path", "outputPath")
    )
    output_images: List[DerivativeSpec] = Field(
        min_length=1, validation_alias=AliasChoices("output_images", "outputImages")
    )

    @property
    def input_prefix(self) -> str:
        return _normalize_prefix(self.input_path)

    @property
    def output_prefix(self) -> str:
        return _normalize_prefix(self.output_path)


class StoreSettings(BaseModel):
    """Connection settings for the S3-compatible store."""

    model_config = ConfigDict(populate_by_name=True)

    access_key_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("access_key_id", "accessKeyId")
    )
    secret_key: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("secret_key", "secretKey")
    )
    endpoint_url: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("endpoint_url", "endpointUrl")
    )
    region: Optional[str] = None
    max_attempts: int = 10


class AppConfig(BaseModel):
    """Top level configuration file contents."""

    model_config = ConfigDict(populate_by_name=True)

    bucket_name: str = Field(
        validation_alias=AliasChoices("bucket_name", "bucketName")
    )
    input_config: SyncConfig = Field(
        validation_alias=AliasChoices("input_config", "inputConfig")
    )
    credentials: StoreSettings = Field(default_factory=StoreSettings)
