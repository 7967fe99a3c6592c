import asyncpg
import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID, uuid4

from database.converters import (
    activity_to_row,
    org_settings_from_row,
    radar_file_from_row,
    radar_update_to_row,
    tpi_context_from_rows,
    usage_to_row,
)
from database.db_manager import DatabaseManager
from database.exceptions import IntegrityError, NotFoundError, StaleRadarFileError
from database.repositories.activity_repo import ActivityRepositoryDB
from database.repositories.org_repo import OrgRepositoryDB
from database.repositories.radar_file_repo import RadarFileRepositoryDB
from database.repositories.usage_repo import UsageRepositoryDB
from models import ActivityEvent, ActivityLevel, RadarStatus, UsageRecord


# ================================================================
# Fixtures
# ================================================================

@pytest.fixture
def mock_pool():
    pool = MagicMock()
    conn = AsyncMock()
    pool.acquire.return_value.__aenter__.return_value = conn
    return pool, conn


def _radar_row(file_id, *, org_id=None, status="pending", extracted_at=None, columns=None):
    return {
        "id": file_id,
        "org_id": org_id or uuid4(),
        "student_id": None,
        "file_url": "org/radar-1.png",
        "file_mime": "image/jpeg",
        "original_name": "radar-1.jpg",
        "source": "Flightscope",
        "status": status,
        "columns": columns,
        "shots": None,
        "stats": None,
        "summary": None,
        "config": None,
        "analytics": None,
        "error": None,
        "extracted_at": extracted_at,
    }


def _tpi_row(name, color=None, summary=None):
    return {"test_name": name, "result_color": color, "mini_summary": summary}


# ================================================================
# Converters
# ================================================================

def test_radar_file_converter():
    file_id, org_id = uuid4(), uuid4()
    f = radar_file_from_row(_radar_row(file_id, org_id=org_id))
    assert f.id == str(file_id)
    assert f.org_id == str(org_id)
    assert f.student_id is None
    assert f.status == RadarStatus.PENDING
    assert f.columns == [] and f.shots == []
    assert f.mime_type == "image/jpeg"


def test_radar_file_converter_null_status():
    f = radar_file_from_row(_radar_row(uuid4(), status=None))
    assert f.status == RadarStatus.PENDING


def test_org_settings_converter_defaults():
    org_id = uuid4()
    settings = org_settings_from_row({
        "id": org_id, "locale": None, "radar_enabled": None,
        "plan_tier": "pro", "ai_budget_cents": None,
    })
    assert settings == {
        "id": str(org_id),
        "locale": "fr-FR",
        "radar_enabled": False,
        "plan_tier": "pro",
        "ai_budget_cents": None,
    }


def test_tpi_context_lines():
    context = tpi_context_from_rows([
        _tpi_row("Pelvic Tilt", "red", " Bascule limitee "),
        _tpi_row("  "),
        _tpi_row("Toe Touch", None, None),
    ])
    assert context == "- Pelvic Tilt (red): Bascule limitee\n- Toe Touch"
    assert tpi_context_from_rows([]) is None


def test_radar_update_to_row_keeps_writable_fields():
    names, values = radar_update_to_row({"error": None, "status": "ready", "org_id": "x"})
    assert names == ["status", "error"]
    assert values == ["ready", None]


def test_usage_to_row():
    user_id, org_id = uuid4(), uuid4()
    row = usage_to_row(UsageRecord(
        user_id=str(user_id), org_id=str(org_id), action="radar_extract",
        model="gemini-2.5-flash", input_tokens=10, output_tokens=5, total_tokens=15,
        cost_eur_cents=1, duration_ms=1200, entity_id="f1",
    ))
    assert row[:4] == (user_id, org_id, "radar_extract", "gemini-2.5-flash")
    assert row[4:] == (10, 5, 15, 1, 1200, None, "f1")


def test_activity_to_row_optional_ids():
    row = activity_to_row(ActivityEvent(action="radar.import.denied", level=ActivityLevel.WARN))
    assert row[:5] == ("warn", "radar.import.denied", "api", None, None)
    assert row[-1] == {}


# ================================================================
# RadarFileRepositoryDB
# ================================================================

@pytest.mark.asyncio
async def test_radar_repo_get_radar_file(mock_pool):
    pool, conn = mock_pool
    repo = RadarFileRepositoryDB(pool)

    file_id = uuid4()
    conn.fetchrow.return_value = _radar_row(file_id, columns=[{"key": "distance_carry"}])

    f = await repo.get_radar_file(str(file_id))
    assert f is not None
    assert f.columns == [{"key": "distance_carry"}]
    assert conn.fetchrow.call_args.args[1] == file_id


@pytest.mark.asyncio
async def test_radar_repo_get_radar_file_not_found(mock_pool):
    pool, conn = mock_pool
    repo = RadarFileRepositoryDB(pool)
    conn.fetchrow.return_value = None

    assert await repo.get_radar_file(str(uuid4())) is None


@pytest.mark.asyncio
async def test_radar_repo_invalid_id_skips_query(mock_pool):
    pool, conn = mock_pool
    repo = RadarFileRepositoryDB(pool)

    assert await repo.get_radar_file("not-a-uuid") is None
    conn.fetchrow.assert_not_called()


@pytest.mark.asyncio
async def test_radar_repo_apply_update(mock_pool):
    pool, conn = mock_pool
    repo = RadarFileRepositoryDB(pool)
    conn.execute.return_value = "UPDATE 1"

    file_id = uuid4()
    await repo.apply_update(str(file_id), {"status": "ready", "summary": "ok"}, None)

    sql, *params = conn.execute.call_args.args
    assert "status = $2, summary = $3" in sql
    assert "extracted_at IS NOT DISTINCT FROM $4" in sql
    assert params == [file_id, "ready", "ok", None]


@pytest.mark.asyncio
async def test_radar_repo_apply_update_stale(mock_pool):
    pool, conn = mock_pool
    repo = RadarFileRepositoryDB(pool)
    conn.execute.return_value = "UPDATE 0"
    conn.fetchval.return_value = 1

    with pytest.raises(StaleRadarFileError):
        await repo.apply_update(str(uuid4()), {"status": "ready"}, datetime(2026, 1, 1, tzinfo=timezone.utc))


@pytest.mark.asyncio
async def test_radar_repo_apply_update_missing_row(mock_pool):
    pool, conn = mock_pool
    repo = RadarFileRepositoryDB(pool)
    conn.execute.return_value = "UPDATE 0"
    conn.fetchval.return_value = None

    with pytest.raises(NotFoundError):
        await repo.apply_update(str(uuid4()), {"status": "ready"}, None)


@pytest.mark.asyncio
async def test_radar_repo_apply_update_empty_payload(mock_pool):
    pool, conn = mock_pool
    repo = RadarFileRepositoryDB(pool)

    await repo.apply_update(str(uuid4()), {"unknown": 1}, None)
    conn.execute.assert_not_called()


@pytest.mark.asyncio
async def test_radar_repo_mark_error(mock_pool):
    pool, conn = mock_pool
    repo = RadarFileRepositoryDB(pool)

    file_id = uuid4()
    await repo.mark_error(str(file_id), "Reponse OCR vide.")
    _, *params = conn.execute.call_args.args
    assert params == [file_id, "error", "Reponse OCR vide."]


@pytest.mark.asyncio
async def test_radar_repo_count_recent_extractions(mock_pool):
    pool, conn = mock_pool
    repo = RadarFileRepositoryDB(pool)
    conn.fetchval.return_value = 42

    since = datetime(2026, 9, 1, tzinfo=timezone.utc)
    assert await repo.count_recent_extractions(str(uuid4()), since) == 42
    assert conn.fetchval.call_args.args[2] == since


# ================================================================
# OrgRepositoryDB
# ================================================================

@pytest.mark.asyncio
async def test_org_repo_profile_org_id(mock_pool):
    pool, conn = mock_pool
    repo = OrgRepositoryDB(pool)

    org_id = uuid4()
    conn.fetchval.return_value = org_id
    assert await repo.get_profile_org_id(str(uuid4())) == str(org_id)

    conn.fetchval.return_value = None
    assert await repo.get_profile_org_id(str(uuid4())) is None


@pytest.mark.asyncio
async def test_org_repo_settings(mock_pool):
    pool, conn = mock_pool
    repo = OrgRepositoryDB(pool)

    org_id = uuid4()
    conn.fetchrow.return_value = {
        "id": org_id, "locale": "en-US", "radar_enabled": True,
        "plan_tier": "free", "ai_budget_cents": 5000,
    }
    settings = await repo.get_org_settings(str(org_id))
    assert settings["locale"] == "en-US"
    assert settings["ai_budget_cents"] == 5000


@pytest.mark.asyncio
async def test_org_repo_tpi_context(mock_pool):
    pool, conn = mock_pool
    repo = OrgRepositoryDB(pool)

    report_id = uuid4()
    conn.fetchval.return_value = report_id
    conn.fetch.return_value = [_tpi_row("Seated Trunk Rotation", "orange", "Rotation limitee a gauche.")]

    context = await repo.get_tpi_context(str(uuid4()))
    assert context == "- Seated Trunk Rotation (orange): Rotation limitee a gauche."
    assert conn.fetch.call_args.args[1] == report_id


@pytest.mark.asyncio
async def test_org_repo_tpi_context_without_report(mock_pool):
    pool, conn = mock_pool
    repo = OrgRepositoryDB(pool)

    assert await repo.get_tpi_context(None) is None
    conn.fetchval.assert_not_called()

    conn.fetchval.return_value = None
    assert await repo.get_tpi_context(str(uuid4())) is None
    conn.fetch.assert_not_called()


# ================================================================
# UsageRepositoryDB / ActivityRepositoryDB
# ================================================================

def _usage(org_id=None):
    return UsageRecord(
        user_id=str(uuid4()), org_id=org_id or str(uuid4()),
        action="radar_extract", model="gemini-2.5-flash",
    )


@pytest.mark.asyncio
async def test_usage_repo_record(mock_pool):
    pool, conn = mock_pool
    repo = UsageRepositoryDB(pool)

    await repo.record(_usage())
    _, *params = conn.execute.call_args.args
    assert len(params) == 11
    assert isinstance(params[0], UUID)


@pytest.mark.asyncio
async def test_usage_repo_fk_violation(mock_pool):
    pool, conn = mock_pool
    repo = UsageRepositoryDB(pool)
    conn.execute.side_effect = asyncpg.ForeignKeyViolationError("org missing")

    with pytest.raises(IntegrityError):
        await repo.record(_usage())


@pytest.mark.asyncio
async def test_usage_repo_spent_cents(mock_pool):
    pool, conn = mock_pool
    repo = UsageRepositoryDB(pool)
    conn.fetchval.return_value = 1234

    assert await repo.spent_cents_since(str(uuid4()), datetime(2026, 10, 1, tzinfo=timezone.utc)) == 1234


@pytest.mark.asyncio
async def test_activity_repo_log(mock_pool):
    pool, conn = mock_pool
    repo = ActivityRepositoryDB(pool)

    org_id = uuid4()
    ok = await repo.log(ActivityEvent(action="radar.import.success", org_id=str(org_id), metadata={"mode": "tabular"}))
    assert ok
    _, *params = conn.execute.call_args.args
    assert params[4] == org_id
    assert params[-1] == {"mode": "tabular"}


@pytest.mark.asyncio
async def test_activity_repo_swallows_db_errors(mock_pool):
    pool, conn = mock_pool
    repo = ActivityRepositoryDB(pool)
    conn.execute.side_effect = asyncpg.PostgresError("relation does not exist")

    assert await repo.log(ActivityEvent(action="radar.import.failed")) is False


def test_db_manager_wires_repositories(mock_pool):
    pool, _ = mock_pool
    db = DatabaseManager(pool)
    assert isinstance(db.radar_files, RadarFileRepositoryDB)
    assert isinstance(db.orgs, OrgRepositoryDB)
    assert isinstance(db.usage, UsageRepositoryDB)
    assert isinstance(db.activity, ActivityRepositoryDB)
