"""
.env values must be visible to modules that read the environment at import time.

Each check runs in a fresh interpreter so already-imported config objects
from this test session do not mask the import order.
"""
import os
import subprocess
import sys
from pathlib import Path

import pytest

BACKEND_DIR = Path(__file__).parent.parent
ENV_KEYS = ("SUPABASE_DB_URL", "DATABASE_URL", "RECRUIT_ENV", "RATE_LIMIT_SCRAPE")


@pytest.fixture
def env_dir(tmp_path):
    (tmp_path / ".env").write_text(
        "SUPABASE_DB_URL=postgresql://u:p@127.0.0.1:1/db\n"
        "RECRUIT_ENV=dev\n"
    )
    return tmp_path


def run_in(cwd, code):
    env = {k: v for k, v in os.environ.items() if k not in ENV_KEYS}
    env["PYTHONPATH"] = os.pathsep.join([str(BACKEND_DIR / "scripts"), str(BACKEND_DIR)])
    result = subprocess.run(
        [sys.executable, "-c", code],
        cwd=cwd,
        env=env,
        capture_output=True,
        text=True,
        timeout=60,
    )
    assert result.returncode == 0, result.stderr
    return result.stdout.strip().splitlines()


def test_cli_sees_database_url_from_dotenv(env_dir):
    lines = run_in(env_dir, "import run_scrape; print(run_scrape.db_config.db_url)")

    assert lines[-1] == "postgresql://u:p@127.0.0.1:1/db"


def test_app_sees_dotenv_before_config_modules(env_dir):
    code = (
        "import main\n"
        "from app.db_config import db_config\n"
        "from app.rate_limit import RATE_LIMIT_SCRAPE\n"
        "print(db_config.db_url)\n"
        "print(RATE_LIMIT_SCRAPE)\n"
    )
    lines = run_in(env_dir, code)

    assert lines[-2:] == ["postgresql://u:p@127.0.0.1:1/db", "30/minute"]
