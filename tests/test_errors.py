import asyncio

import pytest

from ivee_voice.errors import CaptureError, InferenceError, SynthesisError, guarded


async def returns(value):
    return value


async def raises(error):
    raise error


class TestGuarded:
    @pytest.mark.asyncio
    async def test_passes_result_through(self):
        assert await guarded(returns(42), error_type=InferenceError, operation="Answer") == 42

    @pytest.mark.asyncio
    async def test_wraps_foreign_errors(self):
        with pytest.raises(CaptureError, match="Capturing failed: boom") as excinfo:
            await guarded(raises(OSError("boom")), error_type=CaptureError, operation="Capturing")
        assert isinstance(excinfo.value.__cause__, OSError)

    @pytest.mark.asyncio
    async def test_keeps_taxonomy_errors(self):
        with pytest.raises(SynthesisError, match="player missing"):
            await guarded(
                raises(SynthesisError("player missing")),
                error_type=CaptureError,
                operation="Capturing",
            )

    @pytest.mark.asyncio
    async def test_timeout_becomes_error_type(self):
        with pytest.raises(InferenceError, match="timed out after 0.01s"):
            await guarded(
                asyncio.sleep(1),
                error_type=InferenceError,
                operation="Generating reply",
                timeout=0.01,
            )
