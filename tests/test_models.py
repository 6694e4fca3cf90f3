"""Tests for models.py."""

import pytest
from pydantic import ValidationError

from images_sync.core.exceptions import ConfigError
from images_sync.core.models import (
    AppConfig,
    Both,
    ByHeight,
    ByWidth,
    CreationResult,
    DeletionResult,
    DerivativeSpec,
    ExecutionReport,
    JobState,
    ReconciliationState,
    PendingMutation,
    SyncConfig,
)


class TestDerivativeSpec:
    """Tests for DerivativeSpec model."""

    def test_defaults(self):
        spec = DerivativeSpec(width=800)
        assert spec.output_format == "jpeg"
        assert spec.output_quality == 85

    def test_ext_alias(self):
        spec = DerivativeSpec.model_validate({"width": 10, "ext": "webp", "quality": 60})
        assert spec.output_format == "webp"
        assert spec.output_quality == 60

    @pytest.mark.parametrize(
        "data,expected",
        [
            ({"width": 10}, ByWidth(width=10)),
            ({"height": 20}, ByHeight(height=20)),
            ({"width": 10, "height": 20}, Both(width=10, height=20)),
        ],
    )
    def test_constraint_variant(self, data, expected):
        assert DerivativeSpec.model_validate(data).constraint == expected

    def test_constraint_requires_a_dimension(self):
        with pytest.raises(ConfigError):
            DerivativeSpec().constraint

    @pytest.mark.parametrize(
        "data",
        [{"width": 0}, {"height": -1}, {"width": 1, "quality": 0}, {"width": 1, "format": "bmp"}],
    )
    def test_invalid_values(self, data):
        with pytest.raises(ValidationError):
            DerivativeSpec.model_validate(data)


class TestSyncConfig:
    """Tests for SyncConfig model."""

    def test_camel_case_keys(self):
        config = SyncConfig.model_validate(
            {
                "inputPath": "/images",
                "outputPath": "pub/",
                "outputImages": [{"width": 800}],
            }
        )
        assert config.input_prefix == "images/"
        assert config.output_prefix == "pub/"

    def test_empty_path_is_bucket_root(self):
        config = SyncConfig(input_path="", output_path="out", output_images=[{"width": 1}])
        assert config.input_prefix == ""
        assert config.output_prefix == "out/"

    def test_requires_output_images(self):
        with pytest.raises(ValidationError):
            SyncConfig(input_path="a", output_path="b", output_images=[])


class TestAppConfig:
    """Tests for AppConfig model."""

    def test_default_credentials(self):
        config = AppConfig.model_validate(
            {
                "bucketName": "bucket",
                "inputConfig": {
                    "inputPath": "in",
                    "outputPath": "out",
                    "outputImages": [{"height": 100}],
                },
            }
        )
        assert config.bucket_name == "bucket"
        assert config.credentials.access_key_id is None
        assert config.credentials.max_attempts == 10


class TestReports:
    """Tests for state and report aggregates."""

    def test_state_counts(self):
        spec = DerivativeSpec(width=1)
        state = ReconciliationState(
            pending_mutations={
                "a": [PendingMutation(base_key="a", source_input_key="i/a.jpg", spec=spec)],
                "b": [
                    PendingMutation(base_key="b", source_input_key="i/b.jpg", spec=spec),
                    PendingMutation(
                        base_key="b",
                        source_input_key="i/b.jpg",
                        spec=DerivativeSpec(height=1),
                    ),
                ],
            }
        )
        assert state.pending_count == 3
        assert state.existing_count == 0

    def test_execution_report_counts(self):
        report = ExecutionReport(
            creation_results=[
                CreationResult(
                    base_key="a", state=JobState.DONE, requested=2, created_keys=["x", "y"]
                ),
                CreationResult(
                    base_key="b",
                    state=JobState.PARTIAL_FAILURE,
                    requested=2,
                    created_keys=["z"],
                    errors=["boom"],
                ),
                CreationResult(
                    base_key="c", state=JobState.DOWNLOAD_FAILED, requested=1, errors=["x"]
                ),
            ],
            deletion_results=[
                DeletionResult(key="o1", success=True),
                DeletionResult(key="o2", success=False, error="denied"),
            ],
        )
        assert report.created == 3
        assert report.failed == 2
        assert report.skipped_groups == 1
        assert report.deleted == 1
        assert report.failed_deletes == 1
