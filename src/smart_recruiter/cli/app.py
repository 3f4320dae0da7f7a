from __future__ import annotations

import json

import typer
import uvicorn

from smart_recruiter.api.app import create_app
from smart_recruiter.config import get_settings
from smart_recruiter.core.runtime import build_pipeline
from smart_recruiter.core.validation import normalize_trigger
from smart_recruiter.db.init import init_database
from smart_recruiter.db.repositories import RecordStore
from smart_recruiter.db.session import SessionLocal
from smart_recruiter.logging_config import configure_logging
from smart_recruiter.types import TriggerRejection

app = typer.Typer(help="Smart Recruiter CLI")
user_app = typer.Typer(help="Manage candidates")
cv_app = typer.Typer(help="Manage candidate CVs")
job_app = typer.Typer(help="Process job offers")
logs_app = typer.Typer(help="Inspect the outcome log")

app.add_typer(user_app, name="user")
app.add_typer(cv_app, name="cv")
app.add_typer(job_app, name="job")
app.add_typer(logs_app, name="logs")

_INITIALIZED = False


def ensure_initialized() -> None:
    global _INITIALIZED
    if _INITIALIZED:
        return
    init_database()
    _INITIALIZED = True


def _fail(message: str) -> None:
    typer.echo(json.dumps({"ok": False, "error": message}, indent=2), err=True)
    raise typer.Exit(code=1)


@app.command("init")
def init_cmd(demo: bool = typer.Option(False, "--demo", help="Seed a demo candidate with a CV")) -> None:
    """Initialize database and directories."""
    configure_logging()
    result = init_database(with_demo=demo)
    typer.echo(json.dumps({"ok": True, **result}, indent=2))


@app.command("check-config")
def check_config() -> None:
    """Report which integrations are configured."""
    configure_logging()
    settings = get_settings()
    missing = settings.missing_credentials()
    typer.echo(
        json.dumps(
            {
                "environment": settings.app_env,
                "database_url": settings.database_url,
                "groq_model": settings.groq_model,
                "email_backend": settings.email_backend,
                "smtp_configured": settings.smtp_configured,
                "resend_configured": settings.resend_configured,
                "missing": missing,
            },
            indent=2,
        )
    )
    if missing:
        raise typer.Exit(code=1)


@user_app.command("create")
def user_create(
    email: str = typer.Option(..., "--email"),
    full_name: str = typer.Option(..., "--name"),
    phone: str | None = typer.Option(None, "--phone"),
    profession: str | None = typer.Option(None, "--profession"),
    city: str | None = typer.Option(None, "--city"),
    country: str | None = typer.Option(None, "--country"),
    auto_send: bool = typer.Option(False, "--auto-send"),
    user_id: str | None = typer.Option(None, "--id"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        result = RecordStore(db).create_user(
            email=email,
            full_name=full_name,
            phone=phone,
            profession=profession,
            city=city,
            country=country,
            auto_send_enabled=auto_send,
            user_id=user_id,
        )
        if not result.ok:
            _fail(result.error)
        typer.echo(json.dumps({"id": result.value.id, "full_name": result.value.full_name}, indent=2))


@user_app.command("auto-send")
def user_auto_send(
    user_id: str = typer.Option(..., "--user-id"),
    enabled: bool = typer.Option(True, "--enable/--disable"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        result = RecordStore(db).set_auto_send(user_id, enabled)
        if not result.ok:
            _fail(result.error)
        typer.echo(json.dumps({"id": user_id, "auto_send_enabled": result.value.auto_send_enabled}, indent=2))


@cv_app.command("add")
def cv_add(
    user_id: str = typer.Option(..., "--user-id"),
    file_url: str = typer.Option(..., "--file"),
    skills: str = typer.Option("", "--skills", help="Comma separated"),
    experience_years: int | None = typer.Option(None, "--experience-years"),
    education: str | None = typer.Option(None, "--education"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        store = RecordStore(db)
        if not store.get_user(user_id).ok:
            raise typer.BadParameter(f"user {user_id} not found")
        result = store.create_cv(
            user_id=user_id,
            file_url=file_url,
            skills=[item.strip() for item in skills.split(",") if item.strip()],
            experience_years=experience_years,
            education=education,
        )
        if not result.ok:
            _fail(result.error)
        typer.echo(json.dumps({"id": result.value.id, "user_id": user_id, "skills": result.value.skills}, indent=2))


@job_app.command("process")
def job_process(
    user_id: str = typer.Option(..., "--user-id"),
    job_id: str | None = typer.Option(None, "--job-id"),
    title: str | None = typer.Option(None, "--title"),
    company: str | None = typer.Option(None, "--company"),
    url: str | None = typer.Option(None, "--url"),
    description: str | None = typer.Option(None, "--description"),
    city: str | None = typer.Option(None, "--city"),
    country: str | None = typer.Option(None, "--country"),
    contact_email: str | None = typer.Option(None, "--contact-email"),
    recipient_email: str | None = typer.Option(None, "--recipient-email"),
) -> None:
    """Run the full pipeline for one job and print the outcome."""
    configure_logging()
    ensure_initialized()
    trigger = normalize_trigger(
        {
            "user_id": user_id,
            "job_id": job_id,
            "job_title": title,
            "company": company,
            "job_url": url,
            "description": description,
            "city": city,
            "country": country,
            "contact_email": contact_email,
            "recipient_email": recipient_email,
        }
    )
    if isinstance(trigger, TriggerRejection):
        raise typer.BadParameter(trigger.message)

    outcome = build_pipeline().process(trigger)
    typer.echo(outcome.model_dump_json(indent=2))
    if not outcome.success:
        raise typer.Exit(code=1)


@logs_app.command("list")
def logs_list(
    user_id: str = typer.Option(..., "--user-id"),
    level: str | None = typer.Option(None, "--level"),
    limit: int = typer.Option(20, "--limit"),
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        result = RecordStore(db).list_user_logs(user_id, level=level, limit=limit)
        if not result.ok:
            _fail(result.error)
        rows, total = result.value
        typer.echo(
            json.dumps(
                {
                    "total": total,
                    "logs": [
                        {
                            "id": row.id,
                            "level": row.level,
                            "event": row.event,
                            "message": row.message,
                            "application_id": row.application_id,
                            "created_at": row.created_at.isoformat() if row.created_at else None,
                        }
                        for row in rows
                    ],
                },
                indent=2,
            )
        )


@logs_app.command("stats")
def logs_stats(user_id: str = typer.Option(..., "--user-id")) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        result = RecordStore(db).log_stats(user_id)
        if not result.ok:
            _fail(result.error)
        typer.echo(json.dumps({"user_id": user_id, **result.value}, indent=2))


@app.command("serve")
def serve(
    host: str | None = typer.Option(None, "--host"),
    port: int | None = typer.Option(None, "--port"),
) -> None:
    configure_logging()
    ensure_initialized()
    settings = get_settings()
    app_instance = create_app(settings)
    uvicorn.run(app_instance, host=host or settings.app_host, port=port or settings.app_port)
