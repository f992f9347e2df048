"""Tests for the vitalink command line."""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from conftest import (
    FSTUBS_ADDR,
    LIB_IO,
    LIB_KERNEL,
    MOD_IO,
    MOD_KERNEL,
    NID_CLOSE,
    NID_ERRNO,
    NID_EXIT_PROCESS,
    NID_OPEN,
    NID_STACK_GUARD,
)

from vitalink.cli import vitalink_cli


def write_db(path, *, with_close: bool = True):
    functions = {"sceIoOpen": NID_OPEN}
    if with_close:
        functions["sceIoClose"] = NID_CLOSE
    path.write_text(json.dumps({
        "SceLibKernel": {
            "nid": LIB_KERNEL,
            "modules": {
                "SceLibKernel": {
                    "nid": MOD_KERNEL,
                    "functions": {"sceKernelExitProcess": NID_EXIT_PROCESS},
                    "variables": {
                        "__stack_chk_guard": NID_STACK_GUARD,
                        "errno": NID_ERRNO,
                    },
                },
            },
        },
        "SceIofilemgr": {
            "nid": LIB_IO,
            "modules": {"SceIofilemgr": {"nid": MOD_IO, "functions": functions}},
        },
    }))
    return path


@pytest.fixture
def runner():
    return CliRunner()


def test_lists_stubs(runner, vita_elf):
    result = runner.invoke(vitalink_cli, [str(vita_elf)])
    assert result.exit_code == 0, result.output
    assert "Vita Import Stubs" in result.output


def test_resolves_with_database(runner, vita_elf, tmp_path):
    db = write_db(tmp_path / "db.json")
    result = runner.invoke(vitalink_cli, [str(vita_elf), "--db", str(db)])
    assert result.exit_code == 0, result.output
    assert "All 5 imports resolved" in result.output


def test_json_output(runner, vita_elf, tmp_path):
    db = write_db(tmp_path / "db.json")
    result = runner.invoke(
        vitalink_cli, [str(vita_elf), "-d", str(db), "--json", "--chunk-size", "5"],
    )
    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["fstubs_section"] == 2
    assert data["vstubs_section"] == 3
    assert data["symbols"] == 8
    assert len(data["stubs"]) == 5
    first = data["stubs"][0]
    assert first["address"] == FSTUBS_ADDR
    assert first["symbol"] == "sceKernelExitProcess"
    assert first["target"] == "sceKernelExitProcess"
    assert data["resolution"]["all_resolved"] is True
    assert data["resolution"]["unresolved"] == []


def test_json_without_database_has_no_resolution(runner, vita_elf):
    result = runner.invoke(vitalink_cli, [str(vita_elf), "--json"])
    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert "resolution" not in data
    assert data["stubs"][2]["symbol"] is None


def test_unresolved_imports_fail(runner, vita_elf, tmp_path):
    db = write_db(tmp_path / "db.json", with_close=False)
    result = runner.invoke(vitalink_cli, [str(vita_elf), "--db", str(db)])
    assert result.exit_code == 1
    assert "1 of 5 imports unresolved" in result.output


def test_database_from_config(runner, vita_elf, tmp_path):
    db = write_db(tmp_path / "db.json")
    config = tmp_path / "vitalink.toml"
    config.write_text(f'[link]\nimport_db = "{db.as_posix()}"\nchunk_size = 3\n')
    result = runner.invoke(vitalink_cli, [str(vita_elf), "-c", str(config)])
    assert result.exit_code == 0, result.output
    assert "All 5 imports resolved" in result.output


def test_not_an_elf(runner, tmp_path):
    path = tmp_path / "readme.txt"
    path.write_text("definitely not an executable")
    result = runner.invoke(vitalink_cli, [str(path)])
    assert result.exit_code == 1
    assert "not-an-object-file" in result.output


def test_bad_database(runner, vita_elf, tmp_path):
    db = tmp_path / "db.json"
    db.write_text("[1, 2")
    result = runner.invoke(vitalink_cli, [str(vita_elf), "--db", str(db)])
    assert result.exit_code == 1
    assert "Cannot load import database" in result.output


def test_invalid_config(runner, vita_elf, tmp_path):
    config = tmp_path / "vitalink.toml"
    config.write_text("[link]\nchunk_size = -1\n")
    result = runner.invoke(vitalink_cli, [str(vita_elf), "--config", str(config)])
    assert result.exit_code == 1
    assert "Invalid configuration" in result.output


def test_mistyped_config_value(runner, vita_elf, tmp_path):
    config = tmp_path / "vitalink.toml"
    config.write_text('[link]\nchunk_size = "abc"\n')
    result = runner.invoke(vitalink_cli, [str(vita_elf), "--config", str(config)])
    assert result.exit_code == 1
    assert result.exception is None or isinstance(result.exception, SystemExit)
    assert "chunk_size must be int" in result.output
