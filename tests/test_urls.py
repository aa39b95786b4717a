from friendlinks.filters import HostFilters
from friendlinks.urls import (
    host_matches_set,
    hostname_from_url,
    is_resource_url,
    normalize_url,
    origin_of,
)


def test_hostname_from_url_lowercases_and_keeps_subdomains():
    assert hostname_from_url("https://WWW.Example.COM/path") == "www.example.com"
    assert hostname_from_url("http://blog.a.example:8080/") == "blog.a.example"


def test_hostname_from_url_rejects_garbage():
    assert hostname_from_url("") is None
    assert hostname_from_url(None) is None
    assert hostname_from_url("not a url") is None
    assert hostname_from_url("http://[::1") is None


def test_hostname_from_url_rejects_hosts_unfit_for_file_names():
    long_total = "https://" + ("a" * 60 + ".") * 5 + "example/"
    long_label = "https://" + "b" * 64 + ".example/"
    assert hostname_from_url(long_total) is None
    assert hostname_from_url(long_label) is None
    assert hostname_from_url("https://bad\x00host.example/") is None
    assert hostname_from_url("https://" + "c" * 63 + ".example/") == (
        "c" * 63 + ".example"
    )


def test_normalize_url_drops_fragment_and_lowercases_host():
    assert normalize_url("HTTPS://A.Example/Path#top") == "https://a.example/Path"


def test_origin_of():
    assert origin_of("https://a.example/links?x=1") == "https://a.example"
    assert origin_of("/relative/only") is None


def test_host_matches_set_loose_is_bidirectional_substring():
    entries = {"github.com", "https://mp.weixin.qq.com/some/path"}
    assert host_matches_set("github.com", entries)
    assert host_matches_set("gist.github.com", entries)
    # entry contains host
    assert host_matches_set("weixin.qq.com", entries)
    assert not host_matches_set("gitlab.io", entries)
    assert not host_matches_set("", entries)


def test_host_matches_set_loose_false_positive_is_kept():
    # Loose matching also catches hosts that merely contain an entry.
    assert host_matches_set("mygithub.com", {"github.com"})
    assert host_matches_set("github.community", {"github.com"})


def test_host_matches_set_strict_suffix_only():
    entries = {"github.com"}
    assert host_matches_set("github.com", entries, strict=True)
    assert host_matches_set("gist.github.com", entries, strict=True)
    assert not host_matches_set("mygithub.com", entries, strict=True)
    assert not host_matches_set("github.co", entries, strict=True)


def test_strict_filters_use_suffix_matching():
    loose = HostFilters(ignored_hosts=frozenset({"x.com"}), aggregators=frozenset())
    strict = HostFilters(
        ignored_hosts=frozenset({"x.com"}),
        aggregators=frozenset(),
        strict_host_match=True,
    )
    assert loose.is_blocked_host("box.com")
    assert not strict.is_blocked_host("box.com")
    assert strict.is_blocked_host("api.x.com")


def test_is_resource_url():
    exts = (".png", ".zip")
    assert is_resource_url("https://a.example/img/logo.PNG", exts)
    assert is_resource_url("https://a.example/f.zip?dl=1", exts)
    assert not is_resource_url("https://a.example/posts/zip-files", exts)
