"""
SQLAlchemy ORM tables.

The outline is stored as a single self-referencing table. Parent links
are plain foreign keys; children are loaded through the ``children``
relationship when needed. Join tables are unique on their key pair and
cascade with either side.
"""

import datetime
import uuid
from typing import Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    pass


class Project(Base):
    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    genre: Mapped[Optional[str]] = mapped_column(String(100))
    status: Mapped[str] = mapped_column(String(20), default="draft")
    word_count: Mapped[int] = mapped_column(Integer, default=0)
    target_words: Mapped[Optional[int]] = mapped_column(Integer)
    plot_view_mode: Mapped[str] = mapped_column(String(20), default="simplified")
    level_names: Mapped[dict] = mapped_column(JSON, default=dict)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=_utcnow)
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime, default=_utcnow, onupdate=_utcnow
    )

    plot_elements: Mapped[list["PlotElement"]] = relationship(
        back_populates="project", cascade="all, delete-orphan", passive_deletes=True
    )
    characters: Mapped[list["Character"]] = relationship(
        back_populates="project", cascade="all, delete-orphan", passive_deletes=True
    )
    world_settings: Mapped[list["WorldSetting"]] = relationship(
        back_populates="project", cascade="all, delete-orphan", passive_deletes=True
    )
    timelines: Mapped[list["Timeline"]] = relationship(
        back_populates="project", cascade="all, delete-orphan", passive_deletes=True
    )


class PlotElement(Base):
    __tablename__ = "plot_elements"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    project_id: Mapped[str] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), index=True, nullable=False
    )
    parent_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("plot_elements.id", ondelete="CASCADE"), index=True
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    order: Mapped[int] = mapped_column(Integer, default=1)
    status: Mapped[str] = mapped_column(String(20), default="planned")
    summary: Mapped[Optional[str]] = mapped_column(Text)
    content: Mapped[str] = mapped_column(Text, default="")
    notes: Mapped[Optional[str]] = mapped_column(Text)
    word_count: Mapped[int] = mapped_column(Integer, default=0)
    target_words: Mapped[Optional[int]] = mapped_column(Integer)
    mood: Mapped[Optional[str]] = mapped_column(String(100))
    pov: Mapped[Optional[str]] = mapped_column(String(100))
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=_utcnow)
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime, default=_utcnow, onupdate=_utcnow
    )

    project: Mapped["Project"] = relationship(back_populates="plot_elements")
    parent: Mapped[Optional["PlotElement"]] = relationship(
        back_populates="children", remote_side="PlotElement.id"
    )
    children: Mapped[list["PlotElement"]] = relationship(
        back_populates="parent",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="PlotElement.order",
    )
    characters: Mapped[list["PlotElementCharacter"]] = relationship(
        back_populates="plot_element", cascade="all, delete-orphan", passive_deletes=True
    )
    settings: Mapped[list["PlotElementSetting"]] = relationship(
        back_populates="plot_element", cascade="all, delete-orphan", passive_deletes=True
    )
    timelines: Mapped[list["PlotElementTimeline"]] = relationship(
        back_populates="plot_element", cascade="all, delete-orphan", passive_deletes=True
    )


class Character(Base):
    __tablename__ = "characters"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    project_id: Mapped[str] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), index=True, nullable=False
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    role: Mapped[str] = mapped_column(String(20), default="supporting")
    description: Mapped[str] = mapped_column(Text, default="")
    importance: Mapped[int] = mapped_column(Integer, default=5)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=_utcnow)
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime, default=_utcnow, onupdate=_utcnow
    )

    project: Mapped["Project"] = relationship(back_populates="characters")
    plot_elements: Mapped[list["PlotElementCharacter"]] = relationship(
        back_populates="character", cascade="all, delete-orphan", passive_deletes=True
    )


class WorldSetting(Base):
    __tablename__ = "world_settings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    project_id: Mapped[str] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), index=True, nullable=False
    )
    category: Mapped[str] = mapped_column(String(20), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    content: Mapped[str] = mapped_column(Text, default="")
    importance: Mapped[int] = mapped_column(Integer, default=5)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=_utcnow)
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime, default=_utcnow, onupdate=_utcnow
    )

    project: Mapped["Project"] = relationship(back_populates="world_settings")
    plot_elements: Mapped[list["PlotElementSetting"]] = relationship(
        back_populates="setting", cascade="all, delete-orphan", passive_deletes=True
    )


class Timeline(Base):
    __tablename__ = "timelines"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    project_id: Mapped[str] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), index=True, nullable=False
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    story_date: Mapped[Optional[str]] = mapped_column(String(100))
    time_type: Mapped[str] = mapped_column(String(20), nullable=False)
    chron_order: Mapped[int] = mapped_column(Integer, default=1)
    importance: Mapped[int] = mapped_column(Integer, default=5)
    duration: Mapped[Optional[str]] = mapped_column(String(100))
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=_utcnow)
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime, default=_utcnow, onupdate=_utcnow
    )

    project: Mapped["Project"] = relationship(back_populates="timelines")
    plot_elements: Mapped[list["PlotElementTimeline"]] = relationship(
        back_populates="timeline", cascade="all, delete-orphan", passive_deletes=True
    )


class PlotElementCharacter(Base):
    __tablename__ = "plot_element_characters"
    __table_args__ = (UniqueConstraint("plot_element_id", "character_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    plot_element_id: Mapped[str] = mapped_column(
        ForeignKey("plot_elements.id", ondelete="CASCADE"), nullable=False
    )
    character_id: Mapped[str] = mapped_column(
        ForeignKey("characters.id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[Optional[str]] = mapped_column(String(100))
    importance: Mapped[int] = mapped_column(Integer, default=5)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=_utcnow)

    plot_element: Mapped["PlotElement"] = relationship(back_populates="characters")
    character: Mapped["Character"] = relationship(back_populates="plot_elements")


class PlotElementSetting(Base):
    __tablename__ = "plot_element_settings"
    __table_args__ = (UniqueConstraint("plot_element_id", "setting_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    plot_element_id: Mapped[str] = mapped_column(
        ForeignKey("plot_elements.id", ondelete="CASCADE"), nullable=False
    )
    setting_id: Mapped[str] = mapped_column(
        ForeignKey("world_settings.id", ondelete="CASCADE"), nullable=False
    )
    relevance: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=_utcnow)

    plot_element: Mapped["PlotElement"] = relationship(back_populates="settings")
    setting: Mapped["WorldSetting"] = relationship(back_populates="plot_elements")


class PlotElementTimeline(Base):
    __tablename__ = "plot_element_timelines"
    __table_args__ = (UniqueConstraint("plot_element_id", "timeline_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    plot_element_id: Mapped[str] = mapped_column(
        ForeignKey("plot_elements.id", ondelete="CASCADE"), nullable=False
    )
    timeline_id: Mapped[str] = mapped_column(
        ForeignKey("timelines.id", ondelete="CASCADE"), nullable=False
    )
    relationship_type: Mapped[str] = mapped_column("relationship", String(20), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=_utcnow)

    plot_element: Mapped["PlotElement"] = relationship(back_populates="timelines")
    timeline: Mapped["Timeline"] = relationship(back_populates="plot_elements")
