"""Derived file names. Callers look for these side files by convention."""

PCM_SUFFIX = ".pcm"
ENHANCED_AUDIO_SUFFIX = ".enhanced.aac"
EDITED_SUFFIX = "_edited.mp4"


def pcm_path(input_path: str) -> str:
    return input_path + PCM_SUFFIX


def enhanced_audio_path(input_path: str) -> str:
    return input_path + ENHANCED_AUDIO_SUFFIX


def _trim_end_matches(value: str, suffix: str) -> str:
    while suffix and value.endswith(suffix):
        value = value[: -len(suffix)]
    return value


def edited_output_path(input_path: str) -> str:
    """``clip.mp4`` -> ``clip_edited.mp4``; other extensions are kept, ``a.mov`` -> ``a.mov_edited.mp4``."""
    base = _trim_end_matches(_trim_end_matches(input_path, ".mp4"), ".MP4")
    return base + EDITED_SUFFIX


def scratch_paths(input_path: str) -> list[str]:
    """Intermediate files a run may create next to its input."""
    return [pcm_path(input_path), enhanced_audio_path(input_path)]
