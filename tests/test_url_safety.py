"""Tests for SSRF validation of fetch targets."""

import pytest

from cmsindex.errors import AcquisitionError, UnsafeUrlError
from cmsindex.indexing.safety import UrlSafetyPolicy

from support import static_resolver


def _policy(mapping=None, **kwargs) -> UrlSafetyPolicy:
    return UrlSafetyPolicy(resolver=static_resolver(mapping), **kwargs)


def test_public_https_url_is_accepted() -> None:
    policy = _policy()

    policy.check("https://example.com/page")
    assert policy.is_safe("http://example.com:8080/page")


@pytest.mark.parametrize(
    "url",
    [
        "file:///etc/passwd",
        "ftp://example.com/file",
        "gopher://example.com/",
        "javascript:alert(1)",
        "example.com/no-scheme",
    ],
)
def test_non_http_schemes_are_rejected(url: str) -> None:
    with pytest.raises(UnsafeUrlError):
        _policy().check(url)


@pytest.mark.parametrize(
    "url",
    [
        "http://127.0.0.1/",
        "http://10.0.0.5/",
        "http://172.16.3.4/",
        "http://192.168.1.10/",
        "http://169.254.169.254/latest/meta-data/",
        "http://0.0.0.0/",
        "http://[::1]/",
        "http://[fe80::1]/",
        "http://[::ffff:127.0.0.1]/",
    ],
)
def test_internal_literal_addresses_are_rejected(url: str) -> None:
    with pytest.raises(UnsafeUrlError):
        _policy().check(url)


@pytest.mark.parametrize(
    "url",
    ["http://localhost/", "http://LOCALHOST:8000/", "http://api.localhost/", "http://metadata/"],
)
def test_blocked_host_names_are_rejected(url: str) -> None:
    policy = _policy(blocked_hosts=["localhost", "metadata"])

    with pytest.raises(UnsafeUrlError):
        policy.check(url)


@pytest.mark.parametrize("address", ["127.0.0.1", "169.254.169.254", "::1", "100.100.100.200"])
def test_host_names_resolving_internally_are_rejected(address: str) -> None:
    policy = _policy({"sneaky.example": [address]})

    with pytest.raises(UnsafeUrlError):
        policy.check("https://sneaky.example/")


def test_resolution_can_be_disabled() -> None:
    policy = _policy({"sneaky.example": ["127.0.0.1"]}, resolve_hostnames=False)

    policy.check("https://sneaky.example/")


@pytest.mark.parametrize(
    "url",
    ["http://127.1/", "http://2130706433/", "http://0x7f000001/", "http://0/", "http://10.1/"],
)
def test_shorthand_ipv4_literals_are_rejected_without_resolution(url: str) -> None:
    policy = _policy(resolve_hostnames=False)

    with pytest.raises(UnsafeUrlError):
        policy.check(url)
    assert not policy.is_safe(url)


def test_hex_looking_host_names_are_not_literals() -> None:
    policy = _policy(resolve_hostnames=False)

    policy.check("https://cafe.fade/")
    policy.check("https://deadbeef/")


def test_resolution_failure_is_an_acquisition_error() -> None:
    def _fail(host, port):
        raise OSError("Name or service not known")

    policy = UrlSafetyPolicy(resolver=_fail)

    with pytest.raises(AcquisitionError) as excinfo:
        policy.check("https://missing.example/")

    assert not isinstance(excinfo.value, UnsafeUrlError)
    assert excinfo.value.code == "dns_error"
    assert not policy.is_safe("https://missing.example/")


def test_ports_are_not_restricted() -> None:
    assert _policy().is_safe("https://example.com:4443/")


def test_malformed_port_is_rejected() -> None:
    with pytest.raises(UnsafeUrlError):
        _policy().check("http://example.com:notaport/")
