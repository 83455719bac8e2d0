"""
Async SQLAlchemy persistence for candidate profiles and application records.

Defaults to a local SQLite file through ``aiosqlite``; any async
SQLAlchemy URL works.  Database failures surface as
:class:`~auto_apply.errors.PersistenceError`.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import Column, DateTime, Integer, String, Text, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from auto_apply.errors import PersistenceError
from auto_apply.models import Application, ApplicationStatus, Platform, Profile

logger = logging.getLogger(__name__)

__all__ = ["ApplicationStore", "ProfileModel", "ApplicationModel"]

Base = declarative_base()


# -----------------------
# DB Models
# -----------------------
class ProfileModel(Base):
    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(256), nullable=False)
    email = Column(String(256), nullable=False)
    profile_json = Column(Text, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), nullable=False)
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), nullable=False)


class ApplicationModel(Base):
    __tablename__ = "applications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    profile_id = Column(Integer, nullable=True, index=True)
    url = Column(Text, nullable=False, index=True)
    platform = Column(String(32), nullable=False)
    company = Column(String(256), nullable=False)
    job_title = Column(String(512), nullable=False)
    status = Column(String(16), nullable=False, default=ApplicationStatus.PENDING.value)
    generated_resume = Column(Text, nullable=True)
    generated_cover_letter = Column(Text, nullable=True)
    form_data = Column(Text, nullable=True)  # JSON as text
    error_message = Column(Text, nullable=True)
    applied_at = Column(String(40), nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), nullable=False, index=True)


_UPDATABLE = (
    "status",
    "generated_resume",
    "generated_cover_letter",
    "form_data",
    "error_message",
    "applied_at",
)


def _to_application(row: ApplicationModel) -> Application:
    form_data: Optional[dict[str, Any]] = None
    if row.form_data:
        try:
            form_data = json.loads(row.form_data)
        except ValueError:
            form_data = None
    return Application(
        id=row.id,
        profile_id=row.profile_id,
        url=row.url,
        platform=Platform(row.platform),
        company=row.company,
        job_title=row.job_title,
        status=ApplicationStatus(row.status),
        generated_resume=row.generated_resume,
        generated_cover_letter=row.generated_cover_letter,
        form_data=form_data,
        error_message=row.error_message,
        applied_at=row.applied_at,
        created_at=row.created_at.isoformat() if row.created_at else None,
    )


def _to_profile(row: ProfileModel) -> Profile:
    profile = Profile.model_validate_json(row.profile_json)
    return profile.model_copy(update={"id": row.id})


class ApplicationStore:
    """Profiles and application records behind one async engine."""

    def __init__(self, database_url: str) -> None:
        self.database_url = database_url
        self.engine = create_async_engine(database_url, future=True, echo=False)
        self.session_factory = sessionmaker(
            self.engine, expire_on_commit=False, class_=AsyncSession
        )

    async def init(self) -> None:
        """Create tables if missing."""
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not initialise store: {exc}") from exc

    async def close(self) -> None:
        await self.engine.dispose()

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------

    async def save_profile(self, profile: Profile) -> Profile:
        """Insert or update ``profile``; returns it with ``id`` set."""
        payload = profile.model_dump_json(by_alias=True, exclude={"id"})
        try:
            async with self.session_factory() as session:
                row = await session.get(ProfileModel, profile.id) if profile.id else None
                if row is None:
                    row = ProfileModel(name=profile.name, email=profile.email, profile_json=payload)
                    session.add(row)
                else:
                    row.name = profile.name
                    row.email = profile.email
                    row.profile_json = payload
                    row.updated_at = datetime.now(timezone.utc)
                await session.commit()
                return _to_profile(row)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not save profile: {exc}") from exc

    async def get_profile(self, profile_id: int) -> Optional[Profile]:
        try:
            async with self.session_factory() as session:
                row = await session.get(ProfileModel, profile_id)
                return _to_profile(row) if row else None
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not read profile: {exc}") from exc

    async def first_profile(self) -> Optional[Profile]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(ProfileModel).order_by(ProfileModel.id).limit(1)
                )
                row = result.scalars().first()
                return _to_profile(row) if row else None
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not read profile: {exc}") from exc

    # ------------------------------------------------------------------
    # Applications
    # ------------------------------------------------------------------

    async def create_application(self, application: Application) -> Application:
        row = ApplicationModel(
            profile_id=application.profile_id,
            url=application.url,
            platform=Platform(application.platform).value,
            company=application.company,
            job_title=application.job_title,
            status=ApplicationStatus(application.status).value,
            generated_resume=application.generated_resume,
            generated_cover_letter=application.generated_cover_letter,
            form_data=json.dumps(application.form_data) if application.form_data is not None else None,
            error_message=application.error_message,
            applied_at=application.applied_at,
        )
        try:
            async with self.session_factory() as session:
                session.add(row)
                await session.commit()
                logger.debug("Recorded application %s for %s", row.id, row.url)
                return _to_application(row)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not record application: {exc}") from exc

    async def get_application(self, application_id: int) -> Optional[Application]:
        try:
            async with self.session_factory() as session:
                row = await session.get(ApplicationModel, application_id)
                return _to_application(row) if row else None
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not read application: {exc}") from exc

    async def find_by_url(self, url: str) -> Optional[Application]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(ApplicationModel)
                    .where(ApplicationModel.url == url)
                    .order_by(ApplicationModel.id.desc())
                )
                row = result.scalars().first()
                return _to_application(row) if row else None
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not read application: {exc}") from exc

    async def find_all(
        self,
        status: Optional[ApplicationStatus] = None,
        company: Optional[str] = None,
        profile_id: Optional[int] = None,
    ) -> list[Application]:
        """List applications newest first, optionally filtered."""
        query = select(ApplicationModel)
        if status is not None:
            query = query.where(ApplicationModel.status == ApplicationStatus(status).value)
        if company:
            query = query.where(ApplicationModel.company.like(f"%{company}%"))
        if profile_id is not None:
            query = query.where(ApplicationModel.profile_id == profile_id)
        query = query.order_by(ApplicationModel.created_at.desc(), ApplicationModel.id.desc())
        try:
            async with self.session_factory() as session:
                result = await session.execute(query)
                return [_to_application(row) for row in result.scalars().all()]
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not list applications: {exc}") from exc

    async def update_application(self, application_id: int, **updates: Any) -> Optional[Application]:
        """Update the given columns; unknown keys raise ``ValueError``."""
        unknown = set(updates) - set(_UPDATABLE)
        if unknown:
            raise ValueError(f"Cannot update fields: {sorted(unknown)}")
        try:
            async with self.session_factory() as session:
                row = await session.get(ApplicationModel, application_id)
                if row is None:
                    return None
                for key, value in updates.items():
                    if key == "status" and value is not None:
                        value = ApplicationStatus(value).value
                    if key == "form_data" and value is not None:
                        value = json.dumps(value)
                    setattr(row, key, value)
                await session.commit()
                return _to_application(row)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not update application: {exc}") from exc

    async def delete_application(self, application_id: int) -> bool:
        try:
            async with self.session_factory() as session:
                row = await session.get(ApplicationModel, application_id)
                if row is None:
                    return False
                await session.delete(row)
                await session.commit()
                return True
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not delete application: {exc}") from exc

    async def count(self, status: Optional[ApplicationStatus] = None) -> int:
        query = select(func.count(ApplicationModel.id))
        if status is not None:
            query = query.where(ApplicationModel.status == ApplicationStatus(status).value)
        try:
            async with self.session_factory() as session:
                return int((await session.execute(query)).scalar() or 0)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not count applications: {exc}") from exc

    async def previous_answers(self, limit: int = 5) -> list[dict[str, str]]:
        """Answered custom questions from recent applications (few-shot examples)."""
        answers: list[dict[str, str]] = []
        for application in await self.find_all():
            questions = (application.form_data or {}).get("questions") or []
            for q in questions:
                if isinstance(q, dict) and q.get("question") and q.get("answer"):
                    answers.append({"question": q["question"], "answer": q["answer"]})
                    if len(answers) >= limit:
                        return answers
        return answers
