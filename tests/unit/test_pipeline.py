"""
Unit tests for the two-stage ingestion pipeline.
"""

import io
import pytest

from jsonlite.catalog.database import create_storage_engine
from jsonlite.common.errors import DecodeError
from jsonlite.common.logging_config import run_id_ctx
from jsonlite.ingest.loader import Loader
from jsonlite.ingest.pipeline import IngestPipeline
from jsonlite.ingest.schema_manager import SchemaManager


@pytest.fixture
def pipeline(test_settings):
    engine = create_storage_engine(test_settings)
    yield IngestPipeline(
        Loader(engine, SchemaManager("records")),
        queue_capacity=2,
        poll_interval=0.01,
    )
    engine.dispose()


class TestIngestPipeline:
    """Tests for running both stages."""

    def test_result(self, pipeline):
        result = pipeline.run(io.BytesIO(b'{"a": 1}\n{"b": 2}\n{"a": 3}\n'))

        assert result.rows == 3
        assert result.columns_added == ["a", "b"]
        assert result.run_id
        assert result.duration_seconds >= 0

    def test_run_id_cleared_after_run(self, pipeline):
        pipeline.run(io.BytesIO(b'{"a": 1}\n'))

        assert run_id_ctx.get() is None

    def test_decode_error_is_raised(self, pipeline):
        with pytest.raises(DecodeError):
            pipeline.run(io.BytesIO(b'{"a": 1}\n{"a": 2}\n{"a": 3}\n{"a" 4}\n'))

        assert pipeline.loader.schema.columns == ()

    def test_stream_read_error_is_raised(self, pipeline):
        class BrokenStream(io.RawIOBase):
            def readable(self):
                return True

            def readinto(self, buffer):
                raise OSError("disk gone")

        with pytest.raises(OSError, match="disk gone"):
            pipeline.run(BrokenStream())
