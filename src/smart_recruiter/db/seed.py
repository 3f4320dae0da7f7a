from __future__ import annotations

from sqlalchemy.orm import Session

from smart_recruiter.db.models import CV, User

DEMO_USER_ID = "demo-user"

DEMO_USER: dict[str, object] = {
    "email": "demo.candidate@example.com",
    "full_name": "Camille Martin",
    "phone": "06 12 34 56 78",
    "profession": "Backend Engineer",
    "city": "Lyon",
    "country": "France",
    "auto_send_enabled": False,
}

DEMO_CV: dict[str, object] = {
    "file_url": "demo-user/cv_camille_martin.pdf",
    "skills_json": ["Python", "FastAPI", "PostgreSQL", "Docker", "AWS", "Kafka"],
    "experience_years": 5,
    "education": "MSc Computer Science, INSA Lyon",
}


def seed_demo_data(session: Session) -> str:
    """Insert a demo user with one CV; existing rows are left untouched."""
    user = session.get(User, DEMO_USER_ID)
    if user is None:
        user = User(id=DEMO_USER_ID, **DEMO_USER)
        session.add(user)
        session.flush()
        session.add(CV(user_id=DEMO_USER_ID, **DEMO_CV))
        session.commit()
    return DEMO_USER_ID
