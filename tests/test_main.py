import pytest

from bookstall.seller.main import _parse_args, run
from bookstall.seller.state import Store
from bookstall.shared.core.configuration import StorageConfig, SystemConfig


@pytest.fixture
def config(tmp_path):
    Store.reset()
    return SystemConfig(storage=StorageConfig(db_path=str(tmp_path / "bookstall.duckdb")))


def test_parse_args_defaults_to_seller(monkeypatch):
    monkeypatch.delenv("BOOKSTALL_EMAIL", raising=False)
    monkeypatch.delenv("BOOKSTALL_PASSWORD", raising=False)

    args = _parse_args([])

    assert args.role == "SELLER"
    assert args.email is None
    assert not args.logout


@pytest.mark.asyncio
async def test_run_without_credentials_reports_not_signed_in(config):
    args = _parse_args(["--email", "", "--password", ""])

    assert await run(args, config) == 1
    with pytest.raises(RuntimeError):
        Store.get()


@pytest.mark.asyncio
async def test_run_logout(config):
    assert await run(_parse_args(["--logout"]), config) == 0
