class CueError(Exception):
    """Raised when the audio engine or cue assets cannot be used."""
