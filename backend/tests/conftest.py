from __future__ import annotations

import datetime as dt
import io
import os
import tempfile
import zipfile
from pathlib import Path
from typing import Any, Callable, Dict, Generator, List

_TEST_DATA_DIR = Path(tempfile.mkdtemp(prefix="fieldtrack-tests-"))
os.environ.setdefault("FT_SQLITE_PATH", str(_TEST_DATA_DIR / "fieldtrack.db"))
os.environ["FT_TIMEZONE"] = "Asia/Riyadh"
os.environ["FT_SEED_SAMPLE_ORDERS"] = "false"

import pytest
from fastapi.testclient import TestClient
from openpyxl import Workbook
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from fieldtrack import models
from fieldtrack.config import Settings
from fieldtrack.main import app, get_reception, get_state
from fieldtrack.reception import ReceptionOutbox
from fieldtrack.state import AppState
from fieldtrack.store import SqlKeyValueStore


@pytest.fixture()
def engine(tmp_path: Path):
    url = f"sqlite:///{tmp_path / 'test.db'}"
    engine = create_engine(url, connect_args={"check_same_thread": False}, future=True)
    models.Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture()
def store(session_factory: sessionmaker) -> SqlKeyValueStore:
    return SqlKeyValueStore(session_factory)


@pytest.fixture()
def test_settings() -> Settings:
    return Settings(seed_sample_orders=False, fuel_threshold_km=250, default_technician="فهد الحربي")


@pytest.fixture()
def state(store: SqlKeyValueStore, test_settings: Settings) -> AppState:
    return AppState.load(store, test_settings)


@pytest.fixture()
def reception() -> ReceptionOutbox:
    return ReceptionOutbox()


@pytest.fixture()
def client(state: AppState, reception: ReceptionOutbox) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_state] = lambda: state
    app.dependency_overrides[get_reception] = lambda: reception
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def fixed_now() -> dt.datetime:
    return dt.datetime(2024, 3, 5, 7, 30, tzinfo=dt.timezone.utc)


@pytest.fixture()
def make_workbook() -> Callable[[Dict[str, List[List[Any]]]], bytes]:
    def _build(sheets: Dict[str, List[List[Any]]]) -> bytes:
        workbook = Workbook()
        first = True
        for name, rows in sheets.items():
            worksheet = workbook.active if first else workbook.create_sheet()
            worksheet.title = name
            first = False
            for row in rows:
                worksheet.append(row)
        buffer = io.BytesIO()
        workbook.save(buffer)
        return buffer.getvalue()

    return _build


@pytest.fixture()
def truncate_sheet() -> Callable[[bytes], bytes]:
    """Rewrite an xlsx archive with its first sheet's XML cut in half."""

    def _truncate(content: bytes, part: str = "xl/worksheets/sheet1.xml") -> bytes:
        buffer = io.BytesIO()
        with zipfile.ZipFile(io.BytesIO(content)) as source, zipfile.ZipFile(buffer, "w") as target:
            for item in source.infolist():
                data = source.read(item.filename)
                if item.filename == part:
                    data = data[: len(data) // 2]
                target.writestr(item, data)
        return buffer.getvalue()

    return _truncate
