"""ORM models for the generation tables.

The platform owns schema creation; these mappings describe the columns the
engine reads and writes.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Index, Integer, String, Text, UniqueConstraint, func, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from skillsprint.core.database import Base

_UUID = UUID(as_uuid=False)
_GEN_UUID = text("gen_random_uuid()")


class CourseGenerationRequest(Base):
  __tablename__ = "course_generation_requests"
  __table_args__ = (Index("ix_course_generation_requests_created_at", "created_at"),)

  id: Mapped[str] = mapped_column(_UUID, primary_key=True, server_default=_GEN_UUID)
  user_id: Mapped[str | None] = mapped_column(_UUID, nullable=True, index=True)
  status: Mapped[str] = mapped_column(String, nullable=False, server_default=text("'pending'"))
  progress: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
  status_message: Mapped[str | None] = mapped_column(Text, nullable=True)
  request_data: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False)
  content_generated: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("false"))
  course_data: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)
  error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
  updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())


class SprintContent(Base):
  __tablename__ = "sprint_contents"
  __table_args__ = (UniqueConstraint("request_id", "module_index", "sprint_index", name="ux_sprint_contents_request_position"),)

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  request_id: Mapped[str] = mapped_column(_UUID, ForeignKey("course_generation_requests.id", ondelete="CASCADE"), nullable=False, index=True)
  module_index: Mapped[int] = mapped_column(Integer, nullable=False)
  sprint_index: Mapped[int] = mapped_column(Integer, nullable=False)
  content: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False)
  generation_error: Mapped[str | None] = mapped_column(Text, nullable=True)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class KnowledgeAreaRow(Base):
  __tablename__ = "knowledge_areas"

  id: Mapped[str] = mapped_column(_UUID, primary_key=True, server_default=_GEN_UUID)
  name: Mapped[str] = mapped_column(String, nullable=False)
  description: Mapped[str | None] = mapped_column(Text, nullable=True)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class UserKnowledgeProficiency(Base):
  __tablename__ = "user_knowledge_proficiency"

  id: Mapped[str] = mapped_column(_UUID, primary_key=True, server_default=_GEN_UUID)
  user_id: Mapped[str] = mapped_column(_UUID, nullable=False, index=True)
  knowledge_area_id: Mapped[str] = mapped_column(_UUID, ForeignKey("knowledge_areas.id", ondelete="CASCADE"), nullable=False)
  proficiency_score: Mapped[float] = mapped_column(Float, nullable=False)
  confidence_level: Mapped[float] = mapped_column(Float, nullable=False)
  last_assessed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
  updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())


class UserSprintProgress(Base):
  __tablename__ = "user_sprint_progress"

  id: Mapped[str] = mapped_column(_UUID, primary_key=True, server_default=_GEN_UUID)
  user_id: Mapped[str] = mapped_column(_UUID, nullable=False, index=True)
  sprint_id: Mapped[str] = mapped_column(_UUID, nullable=False)
  module_id: Mapped[str] = mapped_column(_UUID, nullable=False)
  path_id: Mapped[str] = mapped_column(_UUID, nullable=False)
  completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
  time_spent_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
  score: Mapped[float | None] = mapped_column(Float, nullable=True)
  attempts: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("1"))


class LearningPath(Base):
  __tablename__ = "learning_paths"

  id: Mapped[str] = mapped_column(_UUID, primary_key=True, server_default=_GEN_UUID)
  title: Mapped[str] = mapped_column(String, nullable=False)
  description: Mapped[str | None] = mapped_column(Text, nullable=True)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Module(Base):
  __tablename__ = "modules"

  id: Mapped[str] = mapped_column(_UUID, primary_key=True, server_default=_GEN_UUID)
  path_id: Mapped[str] = mapped_column(_UUID, ForeignKey("learning_paths.id", ondelete="CASCADE"), nullable=False, index=True)
  title: Mapped[str] = mapped_column(String, nullable=False)
  description: Mapped[str | None] = mapped_column(Text, nullable=True)
  order_index: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))


class Sprint(Base):
  __tablename__ = "sprints"

  id: Mapped[str] = mapped_column(_UUID, primary_key=True, server_default=_GEN_UUID)
  module_id: Mapped[str] = mapped_column(_UUID, ForeignKey("modules.id", ondelete="CASCADE"), nullable=False, index=True)
  title: Mapped[str] = mapped_column(String, nullable=False)
  description: Mapped[str | None] = mapped_column(Text, nullable=True)
  time: Mapped[str | None] = mapped_column(String, nullable=True)
  content: Mapped[Any] = mapped_column(JSONB, nullable=True)
  order_index: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))


class PersonalizedLearningPath(Base):
  __tablename__ = "personalized_learning_paths"

  id: Mapped[str] = mapped_column(_UUID, primary_key=True, server_default=_GEN_UUID)
  user_id: Mapped[str] = mapped_column(_UUID, nullable=False, index=True)
  base_path_id: Mapped[str | None] = mapped_column(_UUID, ForeignKey("learning_paths.id", ondelete="SET NULL"), nullable=True)
  title: Mapped[str] = mapped_column(String, nullable=False)
  description: Mapped[str | None] = mapped_column(Text, nullable=True)
  learning_objectives: Mapped[list[str] | None] = mapped_column(JSONB, nullable=True)
  is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("true"))
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
  updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())


class PersonalizedModule(Base):
  __tablename__ = "personalized_modules"

  id: Mapped[str] = mapped_column(_UUID, primary_key=True, server_default=_GEN_UUID)
  personalized_path_id: Mapped[str] = mapped_column(_UUID, ForeignKey("personalized_learning_paths.id", ondelete="CASCADE"), nullable=False, index=True)
  original_module_id: Mapped[str | None] = mapped_column(_UUID, ForeignKey("modules.id", ondelete="SET NULL"), nullable=True)
  title: Mapped[str] = mapped_column(String, nullable=False)
  description: Mapped[str | None] = mapped_column(Text, nullable=True)
  order_index: Mapped[int] = mapped_column(Integer, nullable=False)
  is_custom: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("false"))


class PersonalizedSprint(Base):
  __tablename__ = "personalized_sprints"

  id: Mapped[str] = mapped_column(_UUID, primary_key=True, server_default=_GEN_UUID)
  personalized_module_id: Mapped[str] = mapped_column(_UUID, ForeignKey("personalized_modules.id", ondelete="CASCADE"), nullable=False, index=True)
  original_sprint_id: Mapped[str | None] = mapped_column(_UUID, ForeignKey("sprints.id", ondelete="SET NULL"), nullable=True)
  title: Mapped[str] = mapped_column(String, nullable=False)
  description: Mapped[str | None] = mapped_column(Text, nullable=True)
  time: Mapped[str | None] = mapped_column(String, nullable=True)
  content: Mapped[Any] = mapped_column(JSONB, nullable=True)
  order_index: Mapped[int] = mapped_column(Integer, nullable=False)
  is_custom: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("false"))
  is_generated: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("false"))
  knowledge_area_focus: Mapped[str | None] = mapped_column(_UUID, ForeignKey("knowledge_areas.id", ondelete="SET NULL"), nullable=True)


class PersonalizedQuizQuestion(Base):
  __tablename__ = "personalized_quiz_questions"

  id: Mapped[str] = mapped_column(_UUID, primary_key=True, server_default=_GEN_UUID)
  personalized_sprint_id: Mapped[str] = mapped_column(_UUID, ForeignKey("personalized_sprints.id", ondelete="CASCADE"), nullable=False, index=True)
  question: Mapped[str] = mapped_column(Text, nullable=False)
  options: Mapped[list[str]] = mapped_column(JSONB, nullable=False)
  correct_answer: Mapped[Any] = mapped_column(JSONB, nullable=True)
  explanation: Mapped[str | None] = mapped_column(Text, nullable=True)
  difficulty_level: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("3"))
  knowledge_area_id: Mapped[str | None] = mapped_column(_UUID, ForeignKey("knowledge_areas.id", ondelete="SET NULL"), nullable=True)
