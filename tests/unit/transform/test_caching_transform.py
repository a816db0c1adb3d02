"""Tests for multicov.transform.cache."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Dict, List, Optional
from unittest.mock import patch

import pytest

from multicov.transform.cache import CachingTransform, WRITE_RETRIES


class _Counter:
    """Transform that records every call."""

    def __init__(self) -> None:
        self.calls: List[str] = []

    def __call__(self, code: str, filename: str, hash_value: str) -> str:
        self.calls.append(filename)
        return f"# {hash_value}\n{code}"


class TestCachingTransform:
    """Tests for CachingTransform."""

    def test_requires_exactly_one_of_transform_and_factory(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError):
            CachingTransform(tmp_path)
        with pytest.raises(ValueError):
            CachingTransform(tmp_path, transform=_Counter(), factory=lambda d: _Counter())

    def test_second_call_is_served_from_cache(self, tmp_path: Path) -> None:
        counter = _Counter()
        transform = CachingTransform(tmp_path, salt="s", transform=counter)

        first = transform("x = 1\n", "/src/a.py")
        second = transform("x = 1\n", "/src/a.py")

        assert first == second
        assert counter.calls == ["/src/a.py"]

    def test_cache_survives_new_instance(self, tmp_path: Path) -> None:
        counter = _Counter()
        CachingTransform(tmp_path, salt="s", transform=_Counter())("x = 1\n", "/src/a.py")
        CachingTransform(tmp_path, salt="s", transform=counter)("x = 1\n", "/src/a.py")
        assert counter.calls == []

    def test_content_change_invalidates(self, tmp_path: Path) -> None:
        counter = _Counter()
        transform = CachingTransform(tmp_path, salt="s", transform=counter)
        transform("x = 1\n", "/src/a.py")
        transform("x = 2\n", "/src/a.py")
        assert len(counter.calls) == 2

    def test_salt_change_invalidates(self, tmp_path: Path) -> None:
        counter = _Counter()
        CachingTransform(tmp_path, salt="s1", transform=counter)("x = 1\n", "/src/a.py")
        CachingTransform(tmp_path, salt="s2", transform=counter)("x = 1\n", "/src/a.py")
        assert len(counter.calls) == 2

    def test_records_hash(self, tmp_path: Path) -> None:
        transform = CachingTransform(tmp_path, transform=_Counter())
        transform("x = 1\n", "/src/a.py")
        assert transform.hashes["/src/a.py"] == transform.key("x = 1\n", "/src/a.py")

    def test_transforms_share_one_hash_record(self, tmp_path: Path) -> None:
        hashes: Dict[str, str] = {}
        py = CachingTransform(tmp_path, transform=_Counter(), hashes=hashes)
        pyw = CachingTransform(tmp_path, transform=_Counter(), ext=".pyw", hashes=hashes)

        py("x = 1\n", "/src/a.py")
        pyw("y = 2\n", "/src/b.pyw")

        assert py.hashes is hashes
        assert pyw.hashes is hashes
        assert set(hashes) == {"/src/a.py", "/src/b.pyw"}

    def test_cache_file_name(self, tmp_path: Path) -> None:
        transform = CachingTransform(tmp_path, transform=_Counter())
        transform("x = 1\n", "/src/module.py")
        hash_value = transform.hashes["/src/module.py"]
        assert (tmp_path / f"module-{hash_value}.py").exists()

    def test_disable_cache_always_transforms(self, tmp_path: Path) -> None:
        counter = _Counter()
        transform = CachingTransform(tmp_path, transform=counter, disable_cache=True)
        transform("x = 1\n", "/src/a.py")
        transform("x = 1\n", "/src/a.py")
        assert len(counter.calls) == 2
        assert list(tmp_path.iterdir()) == []
        assert "/src/a.py" in transform.hashes

    def test_no_cache_dir_disables_cache(self) -> None:
        assert CachingTransform(None, transform=_Counter()).disable_cache is True

    def test_factory_is_called_lazily_once(self, tmp_path: Path) -> None:
        created: List[Optional[Path]] = []

        def factory(cache_dir: Optional[Path]) -> _Counter:
            created.append(cache_dir)
            return _Counter()

        transform = CachingTransform(tmp_path, factory=factory)
        assert created == []
        transform("a = 1\n", "/src/a.py")
        transform("b = 1\n", "/src/b.py")
        assert created == [tmp_path]

    def test_non_string_result_raises(self, tmp_path: Path) -> None:
        transform = CachingTransform(tmp_path, transform=lambda code, name, h: None)  # type: ignore[arg-type,return-value]
        with pytest.raises(TypeError):
            transform("x = 1\n", "/src/a.py")

    def test_write_is_retried(self, tmp_path: Path) -> None:
        transform = CachingTransform(tmp_path, transform=_Counter())
        real_mkstemp = tempfile.mkstemp
        attempts: List[int] = []

        def flaky(*args, **kwargs):  # type: ignore[no-untyped-def]
            attempts.append(1)
            if len(attempts) < WRITE_RETRIES:
                raise OSError("race")
            return real_mkstemp(*args, **kwargs)

        with patch("multicov.transform.cache.tempfile.mkstemp", side_effect=flaky):
            transform("x = 1\n", "/src/a.py")
        assert len(attempts) == WRITE_RETRIES
        assert len(list(tmp_path.glob("a-*.py"))) == 1

    def test_write_error_propagates_after_retries(self, tmp_path: Path) -> None:
        transform = CachingTransform(tmp_path, transform=_Counter())
        with patch("multicov.transform.cache.tempfile.mkstemp", side_effect=OSError("nope")):
            with pytest.raises(OSError):
                transform("x = 1\n", "/src/a.py")
