"""Fixed stage combinations compared by a benchmark run.

Every variant validates the audio, optionally reduces noise and trims
silence, transcribes, and finishes with pass-through cleaning so that text
cleanup never skews the comparison.
"""

from __future__ import annotations

from dataclasses import dataclass

from voxpipe._types import StageType
from voxpipe.config.pipelines import PipelineConfig, StageConfig

BASELINE = "Baseline (No Preprocessing)"
NOISE_ONLY = "Noise Reduction Only"
VAD_ONLY = "VAD Only"
NOISE_AND_VAD = "Noise Reduction + VAD (Cloud)"
LOCAL_BASELINE = "Local (No Preprocessing)"
LOCAL_NOISE_ONLY = "Noise Reduction Only (Local)"
LOCAL_VAD_ONLY = "VAD Only (Local)"
LOCAL_NOISE_AND_VAD = "Noise Reduction + VAD (Local)"


@dataclass(frozen=True, slots=True)
class BenchmarkVariant:
    """A named stage combination."""

    name: str
    use_noise_reduction: bool
    use_vad: bool
    local: bool = False

    def to_config(self) -> PipelineConfig:
        stages = [StageConfig(stage_type=StageType.AUDIO_VALIDATION.value)]
        if self.use_noise_reduction:
            stages.append(StageConfig(stage_type=StageType.NOISE_REDUCTION.value))
        if self.use_vad:
            stages.append(StageConfig(stage_type=StageType.VOICE_ACTIVITY_TRIM.value))
        transcription = (
            StageType.LOCAL_TRANSCRIPTION if self.local else StageType.CLOUD_TRANSCRIPTION
        )
        stages.append(StageConfig(stage_type=transcription.value))
        stages.append(StageConfig(stage_type=StageType.PASS_THROUGH_CLEANING.value))
        return PipelineConfig(name=self.name, description="Benchmark variant", stages=stages)


def benchmark_variants(*, include_local: bool) -> list[BenchmarkVariant]:
    """Return the variants to compare, cloud first.

    Args:
        include_local: Add the local-model counterpart of each variant.
    """
    variants = [
        BenchmarkVariant(BASELINE, use_noise_reduction=False, use_vad=False),
        BenchmarkVariant(NOISE_ONLY, use_noise_reduction=True, use_vad=False),
        BenchmarkVariant(VAD_ONLY, use_noise_reduction=False, use_vad=True),
        BenchmarkVariant(NOISE_AND_VAD, use_noise_reduction=True, use_vad=True),
    ]
    if include_local:
        variants += [
            BenchmarkVariant(LOCAL_BASELINE, use_noise_reduction=False, use_vad=False, local=True),
            BenchmarkVariant(LOCAL_NOISE_ONLY, use_noise_reduction=True, use_vad=False, local=True),
            BenchmarkVariant(LOCAL_VAD_ONLY, use_noise_reduction=False, use_vad=True, local=True),
            BenchmarkVariant(
                LOCAL_NOISE_AND_VAD, use_noise_reduction=True, use_vad=True, local=True
            ),
        ]
    return variants
