"""Background music for rendered slideshows."""

from pathlib import Path

from moviepy import AudioFileClip, VideoClip, CompositeAudioClip
from moviepy.audio.fx import AudioFadeIn, AudioFadeOut

BACKGROUND_VOLUME = 0.15


def load_audio(audio_path: Path) -> AudioFileClip:
    """Load an audio file.

    Raises:
        FileNotFoundError: If audio file doesn't exist.
    """
    if not audio_path.exists():
        raise FileNotFoundError(f"Audio file not found: {audio_path}")

    return AudioFileClip(str(audio_path))


def loop_audio(audio: AudioFileClip, target_duration: float) -> CompositeAudioClip:
    """Loop audio to match a target duration."""
    if audio.duration >= target_duration:
        return audio.subclipped(0, target_duration)

    loops_needed = int(target_duration / audio.duration) + 1
    clips = [audio.with_start(i * audio.duration) for i in range(loops_needed)]

    return CompositeAudioClip(clips).subclipped(0, target_duration)


def fade_audio(audio: AudioFileClip, fade_in: float = 0.0, fade_out: float = 0.0) -> AudioFileClip:
    """Apply fade in/out effects to audio."""
    effects = []

    if fade_in > 0:
        effects.append(AudioFadeIn(fade_in))

    if fade_out > 0:
        effects.append(AudioFadeOut(fade_out))

    if effects:
        return audio.with_effects(effects)

    return audio


def adjust_volume(audio: AudioFileClip, factor: float = 1.0) -> AudioFileClip:
    """Scale audio volume (1.0 = original)."""
    return audio.with_volume_scaled(factor)


def add_background_music(
    video: VideoClip,
    audio_path: Path,
    volume: float = BACKGROUND_VOLUME,
    fade_out: float = 1.0,
) -> VideoClip:
    """Lay quiet, looped music under a video.

    Args:
        video: Video clip to add audio to.
        audio_path: Path to audio file.
        volume: Volume factor for the music.
        fade_out: Duration of fade out at the end (seconds).

    Returns:
        Video clip with the music track.
    """
    audio = loop_audio(load_audio(audio_path), video.duration)
    audio = adjust_volume(audio, volume)

    if fade_out > 0:
        audio = fade_audio(audio, fade_out=min(fade_out, video.duration))

    return video.with_audio(audio)
