"""Sermon audio records and their per-language translations."""

import math

from sqlalchemy import Boolean, Float, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sermon_audio.core.database.base import Base, TimestampMixin
from sermon_audio.core.exceptions import InvariantViolationError


class SermonAudio(Base, TimestampMixin):
    """
    A sermon audio record.

    Derived artifacts live on the translations, one per language.
    """

    __tablename__ = "sermon_audio"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    translations: Mapped[list["SermonAudioTranslation"]] = relationship(
        back_populates="record",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="SermonAudioTranslation.id",
    )

    def check_invariants(self) -> None:
        for translation in self.translations:
            translation.check_invariants()

    def __repr__(self) -> str:
        return f"<SermonAudio {self.id} ({len(self.translations)} translations)>"


class SermonAudioTranslation(Base, TimestampMixin):
    """Language-specific variant of a sermon audio record."""

    __tablename__ = "sermon_audio_translations"
    __table_args__ = (UniqueConstraint("record_id", "langcode", name="uq_sermon_audio_translation_langcode"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    record_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("sermon_audio.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    langcode: Mapped[str] = mapped_column(String(12), nullable=False)

    # Audio
    unprocessed_audio_ref: Mapped[str | None] = mapped_column(String(512))
    processed_audio_ref: Mapped[str | None] = mapped_column(String(512))
    duration: Mapped[float | None] = mapped_column(Float)  # seconds, of the processed audio

    # Outstanding remote jobs
    cleaning_job_id: Mapped[str | None] = mapped_column(String(255), index=True)
    transcription_job_id: Mapped[str | None] = mapped_column(String(255), index=True)
    cleaning_job_failed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    transcription_job_failed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Rendered transcript HTML key
    transcription_sub_key: Mapped[str | None] = mapped_column(String(512))

    record: Mapped[SermonAudio] = relationship(back_populates="translations")

    def check_invariants(self) -> None:
        """Raise InvariantViolationError if the translation is inconsistent."""
        if (self.processed_audio_ref is None) != (self.duration is None):
            raise InvariantViolationError(
                f"Translation {self.langcode!r} of record {self.record_id}: "
                "processed audio and duration must be set together"
            )
        if self.duration is not None and (self.duration < 0 or not math.isfinite(self.duration)):
            raise InvariantViolationError(
                f"Translation {self.langcode!r} of record {self.record_id}: invalid duration {self.duration!r}"
            )
        if self.unprocessed_audio_ref is None and self.processed_audio_ref is None:
            raise InvariantViolationError(
                f"Translation {self.langcode!r} of record {self.record_id}: no audio reference"
            )

    def __repr__(self) -> str:
        return f"<SermonAudioTranslation {self.record_id}/{self.langcode}>"
