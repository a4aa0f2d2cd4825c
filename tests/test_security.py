import pytest

from hooksync.core.security import build_webhook_url, parse_ref, validate_identifier, validate_repo


@pytest.mark.parametrize("name", ["wopr-network", "my.org", "org_name", "a", "A1", "a" * 39, "x-y.z_9"])
def test_accepts_valid_identifiers(name):
    assert validate_identifier(name) is True


@pytest.mark.parametrize(
    "name",
    [
        "",
        "../repos/victim",
        "my org",
        "org;rm -rf /",
        "-leadinghyphen",
        "trailinghyphen-",
        ".dotfirst",
        "underscore_",
        "a..b",
        "org/name",
        "tab\tname",
        "a" * 40,
        None,
    ],
)
def test_rejects_invalid_identifiers(name):
    assert validate_identifier(name) is False


def test_validate_repo():
    assert validate_repo("owner/repo") is True
    assert validate_repo("my.org/some_repo") is True
    assert validate_repo("owner") is False
    assert validate_repo("owner/repo/extra") is False
    assert validate_repo("../repo") is False
    assert validate_repo("owner/") is False


def test_parse_ref_accepts_owner_repo_number():
    assert parse_ref("owner/repo#42") == ("owner/repo", 42)


@pytest.mark.parametrize("ref", ["42", "invalid-format", "https://github.com/o/r/pull/42", "owner/repo", "o/r#x", ""])
def test_parse_ref_rejects_other_shapes(ref):
    assert parse_ref(ref) is None


def test_build_webhook_url():
    assert build_webhook_url("box.ts.net", "/hooks") == "https://box.ts.net/hooks/github"
    assert build_webhook_url(None, "/hooks") is None
    assert build_webhook_url("box.ts.net", "") is None
