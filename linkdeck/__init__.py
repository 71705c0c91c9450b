import json
from pathlib import Path

import click
from flask import Flask

from linkdeck.api import api_bp
from linkdeck.config import Config
from linkdeck.extensions import db, migrate
from linkdeck.jobs.scheduler import run_integrity_sweep, start_scheduler
from linkdeck.schema_migrations import migrate_legacy_ordering_columns
from linkdeck.services.backup import export_backup
from linkdeck.services.ordering import normalize_all
from linkdeck.services.reconcile import import_bookmark_html, import_document
from linkdeck.services.security import issue_api_token
from linkdeck.services.site import initialize_store
from linkdeck.services.transactions import atomic


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    db.init_app(app)
    migrate.init_app(app, db)

    app.register_blueprint(api_bp)

    @app.cli.command("init-db")
    def init_db_command():
        db.create_all()
        migrate_legacy_ordering_columns()
        initialize_store()
        print("Initialized LinkDeck database.")

    @app.cli.command("cleanup-orphans")
    def cleanup_orphans_command():
        summary = run_integrity_sweep(app)
        if summary is None:
            raise click.ClickException("integrity sweep failed")
        print(f"Removed orphans: {summary['removed']}")
        print(f"Reindexed: {summary['reindexed']}")

    @app.cli.command("normalize-order")
    def normalize_order_command():
        with atomic():
            counts = normalize_all()
        for table, changed in counts.items():
            print(f"{table}: {changed} rows reindexed")

    @app.cli.command("export-backup")
    @click.argument("path", type=click.Path(dir_okay=False, path_type=Path))
    def export_backup_command(path: Path):
        path.write_text(
            json.dumps(export_backup(), ensure_ascii=False, indent=2), encoding="utf-8"
        )
        print(f"Exported backup to {path}")

    @app.cli.command("import-backup")
    @click.argument(
        "path", type=click.Path(exists=True, dir_okay=False, path_type=Path)
    )
    def import_backup_command(path: Path):
        text = path.read_text(encoding="utf-8", errors="ignore")
        if path.suffix.lower() in {".html", ".htm"}:
            result = import_bookmark_html(text)
        else:
            result = import_document(json.loads(text))
        print(json.dumps(result.as_dict(), indent=2))

    @app.cli.command("issue-token")
    def issue_token_command():
        print(issue_api_token(app.config["SECRET_KEY"]))

    with app.app_context():
        db.create_all()
        migrate_legacy_ordering_columns()
        initialize_store()

    start_scheduler(app)
    return app
