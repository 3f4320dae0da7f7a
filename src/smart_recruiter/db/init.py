from __future__ import annotations

from pathlib import Path

from smart_recruiter.config import get_settings
from smart_recruiter.db.base import Base
from smart_recruiter.db.session import SessionLocal, engine
from smart_recruiter.db import models  # noqa: F401
from smart_recruiter.db.seed import seed_demo_data


def ensure_data_directories() -> None:
    settings = get_settings()
    paths: list[Path] = [settings.data_dir, settings.cv_storage_dir]
    for path in paths:
        path.mkdir(parents=True, exist_ok=True)


def init_database(*, with_demo: bool = False) -> dict[str, object]:
    ensure_data_directories()
    Base.metadata.create_all(bind=engine)

    if not with_demo:
        return {"demo_user_id": None}

    with SessionLocal() as session:
        user_id = seed_demo_data(session)
    return {"demo_user_id": user_id}
