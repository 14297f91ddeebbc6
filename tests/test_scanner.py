import logging

from coderag.indexing import iter_files, scanner
from coderag.utils import looks_binary


def test_lists_text_files_sorted_and_relative(sample_repo):
    files = iter_files(sample_repo, 300 * 1024)

    assert [f.rel_path for f in files] == ["README.md", "src/counter.ts", "src/sessions.py"]
    readme = files[0]
    assert readme.size == (sample_repo / "README.md").stat().st_size
    assert readme.mtime_ms > 0


def test_excluded_dirs_are_case_insensitive(sample_repo):
    (sample_repo / "Generated").mkdir()
    (sample_repo / "Generated" / "api.py").write_text("x = 1\n", encoding="utf-8")

    files = iter_files(sample_repo, 300 * 1024, excluded_dirs=["generated"])

    assert all(not f.rel_path.startswith("Generated/") for f in files)
    assert all(not f.rel_path.startswith("node_modules/") for f in files)


def test_skips_binary_and_large_files(sample_repo):
    (sample_repo / "logo.png").write_bytes(b"\x89PNG")
    (sample_repo / "blob.dat").write_bytes(b"abc\x00def")
    (sample_repo / "big.txt").write_text("x" * 2048, encoding="utf-8")

    paths = [f.rel_path for f in iter_files(sample_repo, 1024)]

    assert "logo.png" not in paths
    assert "blob.dat" not in paths
    assert "big.txt" not in paths
    assert "README.md" in paths


def test_looks_binary():
    assert looks_binary(b"\x00")
    assert looks_binary(bytes(range(1, 8)) * 10)
    assert not looks_binary(b"plain text\nwith\ttabs\r\n")
    assert not looks_binary(b"")


def test_unreadable_file_is_skipped_with_warning(sample_repo, monkeypatch, caplog):
    real_check = scanner.is_binary_file

    def denied(path, *args, **kwargs):
        if str(path).endswith("counter.ts"):
            raise PermissionError(13, "Permission denied", str(path))
        return real_check(path, *args, **kwargs)

    monkeypatch.setattr(scanner, "is_binary_file", denied)
    with caplog.at_level(logging.WARNING, logger="coderag.indexing.scanner"):
        files = iter_files(sample_repo, 300 * 1024)

    assert [f.rel_path for f in files] == ["README.md", "src/sessions.py"]
    assert any("counter.ts" in r.getMessage() for r in caplog.records)
