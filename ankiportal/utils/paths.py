"""
Media filename generation - single source of truth for file naming.

Filenames are derived from the word and the note id only, so generating
media again for the same note overwrites the stored file instead of
adding a new one.
"""

from .parsing import TextParser


class MediaPathGenerator:
    """Centralized media filename generator."""

    PREFIX = "spelling"

    # File extensions
    AUDIO_EXT = ".mp3"

    @classmethod
    def audio_word(cls, word: str, note_id: int) -> str:
        """
        Generate filename for word audio.

        Returns:
            Filename like "spelling_came_down_1712345.mp3"
        """
        return f"{cls.PREFIX}_{TextParser.safe_filename_part(word)}_{note_id}{cls.AUDIO_EXT}"

    @classmethod
    def audio_sentence(cls, word: str, note_id: int) -> str:
        """
        Generate filename for sentence audio.

        Returns:
            Filename like "spelling_sentence_creature_1712345.mp3"
        """
        return f"{cls.PREFIX}_sentence_{TextParser.safe_filename_part(word)}_{note_id}{cls.AUDIO_EXT}"

    @classmethod
    def image(cls, word: str, note_id: int, mime_type: str = "image/png") -> str:
        """
        Generate filename for the note picture.

        Returns:
            Filename like "spelling_img_creature_1712345.png"
        """
        ext = "png" if "png" in (mime_type or "") else "jpg"
        return f"{cls.PREFIX}_img_{TextParser.safe_filename_part(word)}_{note_id}.{ext}"

    @staticmethod
    def sound_ref(filename: str) -> str:
        """Field value that plays a stored audio file."""
        return f"[sound:{filename}]"

    @staticmethod
    def image_ref(filename: str) -> str:
        """Field value that shows a stored image."""
        return f'<img src="{filename}">'
