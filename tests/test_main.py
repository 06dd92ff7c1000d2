"""Tests for the command-line entry point."""

import json

import pytest

from memos_immich import main as cli
from memos_immich.config import ImmichConfig
from memos_immich.services.immich_service import ImmichService

from .conftest import ASSET_ID


def test_extract_prints_asset_id(capsys) -> None:
    assert cli.main(["extract", f"immich://{ASSET_ID}"]) == 0

    assert json.loads(capsys.readouterr().out) == {"assetId": ASSET_ID, "found": True}


def test_extract_not_found(capsys) -> None:
    assert cli.main(["extract", "nothing here"]) == 1

    assert json.loads(capsys.readouterr().out)["found"] is False


def test_service_errors_exit_with_code_two(mocker) -> None:
    mocker.patch.object(cli, "immich_service", ImmichService(ImmichConfig()))

    assert cli.main(["albums"]) == 2


def test_command_is_required() -> None:
    with pytest.raises(SystemExit):
        cli.main([])
