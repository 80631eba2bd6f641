import sqlite3

import pytest

from casket import main as main_module


@pytest.fixture
def config_file(tmp_path):
    p = tmp_path / "catalogs.toml"
    p.write_text(
        "[family]\n"
        f'data_path = "{(tmp_path / "data").as_posix()}"\n'
        f'thumbnail_path = "{(tmp_path / "thumbs").as_posix()}"\n',
        encoding="utf-8",
    )
    return p


def run(*argv):
    return main_module.main([str(a) for a in argv])


def test_main_imports_and_reports(tmp_path, config_file, make_jpeg):
    src = tmp_path / "card"
    make_jpeg("IMG_1.jpg", directory=src)

    assert run("-s", src, "-c", "family", "--config", config_file) == 0

    db_path = tmp_path / "thumbs" / "casket.db"
    assert db_path.exists()
    assert (tmp_path / "thumbs" / "casket.log").exists()
    c = sqlite3.connect(db_path)
    try:
        assert c.execute("SELECT COUNT(*) FROM media_items").fetchone() == (1,)
    finally:
        c.close()

    # Second run only finds duplicates and still succeeds
    assert run("-s", src, "-c", "family", "--config", config_file) == 0

def test_main_custom_db_path(tmp_path, config_file, make_jpeg):
    src = tmp_path / "card"
    make_jpeg("IMG_1.jpg", directory=src)
    db_path = tmp_path / "elsewhere" / "catalog.db"

    assert run("-s", src, "-c", "family", "--config", config_file, "--db", db_path) == 0
    assert db_path.exists()

def test_unknown_catalog_is_fatal(tmp_path, config_file):
    assert run("-s", tmp_path, "-c", "holidays", "--config", config_file) == 1

def test_unparsable_config_is_fatal(tmp_path):
    bad = tmp_path / "bad.toml"
    bad.write_text("[[[", encoding="utf-8")
    assert run("-s", tmp_path, "-c", "family", "--config", bad) == 1

def test_missing_source_is_fatal(tmp_path, config_file):
    assert run("-s", tmp_path / "nope", "-c", "family", "--config", config_file) == 1

def test_empty_source_is_not_an_error(tmp_path, config_file):
    src = tmp_path / "empty"
    src.mkdir()
    assert run("-s", src, "-c", "family", "--config", config_file) == 0

def test_all_files_failed_exits_nonzero(tmp_path, config_file, make_jpeg):
    src = tmp_path / "card"
    make_jpeg("IMG_1.jpg", directory=src)
    # data root blocked by a regular file
    (tmp_path / "data").write_text("in the way")

    assert run("-s", src, "-c", "family", "--config", config_file) == 1
