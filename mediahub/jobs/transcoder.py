"""Transcoder interface and the simulated implementation used by the service."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Dict

from mediahub.jobs.models import ProcessingConfig, Quality, TranscodeOutput

logger = logging.getLogger(__name__)

# Encoder presets per quality level
QUALITY_PRESETS: Dict[Quality, Dict[str, object]] = {
    Quality.LOW: {"crf": 28, "audio_bitrate": "96k"},
    Quality.MEDIUM: {"crf": 23, "audio_bitrate": "128k"},
    Quality.HIGH: {"crf": 18, "audio_bitrate": "192k"},
}


def quality_settings(quality: Quality) -> Dict[str, object]:
    return QUALITY_PRESETS.get(quality, QUALITY_PRESETS[Quality.MEDIUM])


class Transcoder(ABC):
    """Abstract media-processing operation (probe + encode)."""

    @abstractmethod
    async def transcode(self, config: ProcessingConfig) -> TranscodeOutput:
        """Encode the configured inputs. Raises ProcessingError on failure."""
        ...


class MockTranscoder(Transcoder):
    """Simulates an encode: waits ``delay`` seconds and reports a fixed result."""

    DURATION_SECONDS = 120.0
    FILE_SIZE_BYTES = 10 * 1024 * 1024
    RESOLUTION = "1920x1080"
    BITRATE = 2_500_000

    def __init__(self, delay: float = 0.05):
        self._delay = delay

    async def transcode(self, config: ProcessingConfig) -> TranscodeOutput:
        preset = quality_settings(config.quality)
        logger.debug(
            f"Transcoding {config.video_file.url} -> {config.output_format} "
            f"(crf={preset['crf']}, audio={preset['audio_bitrate']}, "
            f"{len(config.audio_tracks)} audio, {len(config.subtitle_tracks)} subtitle track(s))"
        )
        await asyncio.sleep(self._delay)
        return TranscodeOutput(
            duration_seconds=self.DURATION_SECONDS,
            file_size_bytes=self.FILE_SIZE_BYTES,
            format=config.output_format,
            resolution=self.RESOLUTION,
            bitrate=self.BITRATE,
        )
