from __future__ import annotations

import pytest

from adapters.parsers.requirements import compare_manifests, duplicates, option_lines, parse_requirements
from core.errors import ManifestError
from core.services.reproducibility import compare_requirement_files, compare_requirement_texts
from samples import REQUIREMENTS


def test_parse_pinned_manifest() -> None:
    reqs = parse_requirements(REQUIREMENTS)
    assert [r.name for r in reqs] == ["asgiref", "Django", "gunicorn", "sqlparse"]
    assert all(r.pinned for r in reqs)
    assert reqs[1].version == "4.2.7"
    assert reqs[1].line_no == 2


def test_parse_mixed_lines() -> None:
    text = (
        "# comment\n"
        "-r base.txt\n"
        "--index-url https://pypi.org/simple\n"
        "\n"
        "psycopg2-binary==2.9.9 ; python_version >= '3.8'\n"
        "requests[socks]>=2.31\n"
        "celery>=5,<6\n"
        "whitenoise\n"
        "mylib @ https://example.com/mylib.tar.gz\n"
        "pytz==2023.3 --hash=sha256:abc\n"
    )
    reqs = {r.name: r for r in parse_requirements(text)}
    assert reqs["psycopg2-binary"].pinned
    assert reqs["requests"].operator == ">=" and not reqs["requests"].pinned
    assert not reqs["celery"].pinned
    assert reqs["whitenoise"].operator is None
    assert reqs["mylib"].operator == "@"
    assert reqs["mylib"].url == "https://example.com/mylib.tar.gz"
    assert reqs["celery"].specifier == ">=5,<6"
    assert reqs["pytz"].version == "2023.3"


def test_malformed_line() -> None:
    with pytest.raises(ManifestError) as excinfo:
        parse_requirements("Django==4.2\n==1.0\n")
    assert excinfo.value.line == 2


def test_duplicates_use_normalized_names() -> None:
    reqs = parse_requirements("Django==4.2.7\ndjango==4.2.8\n")
    assert duplicates(reqs) == {"django": [1, 2]}


def test_compare_manifests() -> None:
    left = parse_requirements("Django==4.2.7\ngunicorn==21.2.0\nsqlparse==0.4.4\n")
    right = parse_requirements("django==4.2.8\ngunicorn==21.2.0\nasgiref==3.7.2\n")
    diff = compare_manifests(left, right)
    assert diff.missing == ["sqlparse"]
    assert diff.extra == ["asgiref"]
    assert diff.mismatched == {"django": ("==4.2.7", "==4.2.8")}
    assert not diff.identical


def test_freeze_output_matches_manifest(tmp_path) -> None:
    manifest = tmp_path / "requirements.txt"
    freeze = tmp_path / "freeze.txt"
    manifest.write_text(REQUIREMENTS, encoding="utf-8")
    # pip freeze on the host: different order and casing, same packages.
    freeze.write_text("gunicorn==21.2.0\nsqlparse==0.4.4\ndjango==4.2.7\nasgiref==3.7.2\n", encoding="utf-8")
    assert compare_requirement_files(manifest, freeze).identical


def test_compare_texts_reports_drift() -> None:
    diff = compare_requirement_texts(REQUIREMENTS, "asgiref==3.7.2\nDjango==4.2.7\ngunicorn==22.0.0\n")
    assert diff.missing == ["sqlparse"]
    assert diff.mismatched == {"gunicorn": ("==21.2.0", "==22.0.0")}


def test_option_lines_are_kept_apart() -> None:
    text = "-r base.txt\nDjango==4.2.7\n-e git+https://github.com/x/y@main#egg=y\n--index-url https://pypi.org/simple\n"
    assert [r.name for r in parse_requirements(text)] == ["Django"]
    assert option_lines(text) == [
        (1, "-r base.txt"),
        (3, "-e git+https://github.com/x/y@main#egg=y"),
        (4, "--index-url https://pypi.org/simple"),
    ]


def test_range_is_not_the_same_as_a_pin() -> None:
    diff = compare_requirement_texts("Django>=4.2\n", "Django==4.2\n")
    assert not diff.identical
    assert diff.mismatched == {"django": (">=4.2", "==4.2")}


def test_direct_references_compare_urls() -> None:
    left = "mylib @ https://example.com/mylib-1.0.tar.gz\n"
    assert compare_requirement_texts(left, left).identical
    diff = compare_requirement_texts(left, "mylib @ https://example.com/mylib-2.0.tar.gz\n")
    assert diff.mismatched == {
        "mylib": ("@ https://example.com/mylib-1.0.tar.gz", "@ https://example.com/mylib-2.0.tar.gz")
    }


def test_undecodable_manifest(tmp_path) -> None:
    manifest = tmp_path / "requirements.txt"
    freeze = tmp_path / "freeze.txt"
    manifest.write_text(REQUIREMENTS, encoding="utf-8")
    freeze.write_bytes(REQUIREMENTS.encode("utf-16"))
    with pytest.raises(ManifestError, match="cannot read manifest"):
        compare_requirement_files(manifest, freeze)
