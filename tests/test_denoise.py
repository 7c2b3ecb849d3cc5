"""Tests for title filters, the domain blacklist, missing-url detection and dedup."""

from __future__ import annotations

import json

import pytest

from hndigest.denoise.dedup import deduplicate
from hndigest.denoise.filters import (
    DomainBlacklist,
    ItemFilter,
    TitleFilter,
    compile_filters,
    is_missing_url,
)
from hndigest.pipeline.config import AppConfig

from tests.conftest import make_item

TITLES = [
    "Rust is awesome",
    "Rust is cool",
    "Rust is aweful",
    "Go is cool",
    "Dart is some thing",
]

# A real-world filter config: 29 groups, 105 patterns.
PRODUCTION_CONFIG = r"""
{
    "purge_after_days": 720,
    "blacklisted_domains": ["www.businessinsider.com", "www.nytimes.com", "en.wikipedia.org"],
    "filters": [
        {"title": "IDE", "value": "\\bzed\\b,\\b(vs|studio)\\s?code\\b,\\bvim\\b,neovim,\\bide\\b"},
        {"title": "JavaScript", "value": "\\bjs\\b,(ecma|java).*script,\\bnode(\\.?js)?\\b,\\bnpm\\b"},
        {"title": "Covid", "value": "\\bcovid,\\bdelta\\b,vaccin"},
        {"title": "SQL", "value": "sql,database"},
        {"title": "Languages", "value": "\\bgo(lang)?\\b,\\brust\\b,\\bphp\\b,\\bmarkdown\\b,crystal,carbon\\b,pattern"},
        {"title": "FreeStuff", "value": "\\bfree\\b"},
        {"title": "HardwareVendors", "value": "dell"},
        {"title": "GraphQL", "value": "graphql"},
        {"title": "API", "value": "api\\b"},
        {"title": "Misc", "value": "toolbox\\b,framework\\b,\\bsdk\\b,\\bui\\b,\\barchitect"},
        {"title": "Hackers", "value": "\\bcve-,\\bhack,\\bpassw,\\bsecuri,\\bvulner,\\bbot\\b,\\bbotnet,owasp"},
        {"title": "Development", "value": "development,\\bweb.?socket,gdb"},
        {"title": "Css", "value": "\\bcss\\b,\\bstyle\\b"},
        {"title": "Linux", "value": "\\blinux\\b,ubuntu,debian,centos,\\bgnu\\b,\\bopen[-\\s]?source\\b,bpf\\b,tcp,ssh"},
        {"title": "Services", "value": "docker,haproxy,cassandra,elasticsearch,rabbitmq,nginx,k8s,\\brke,\\brancher,kubernetes,postfix,https,apache,github,\\bgit\\b"},
        {"title": "FAANG", "value": "google,apple,\\bmeta\\b,facebook,\\bfb\\b,microsoft,\\bms\\b,netflix,whatsapp,amazon,\\baws\\b"},
        {"title": "SRE", "value": "\\bsre\\b,devops,resiliency,recovery,reliability"},
        {"title": "Vue", "value": "\\bvue(\\.?js)?\\b"},
        {"title": "Books", "value": "pdf"},
        {"title": "Primers", "value": "primer\\b"},
        {"title": "Awesome", "value": "awesome\\b"},
        {"title": "AppNews", "value": "\\bapp\\b"},
        {"title": "Python", "value": "\\bpython"},
        {"title": "Problem", "value": "version,problem,debug,issues?\\b"},
        {"title": "Releases", "value": "release,\\bannounc"},
        {"title": "CPU/GPU", "value": "\\bintel\\b,\\bamd\\b"},
        {"title": "ComputerScience", "value": "\\bcs-?[1-9],\\balgor"},
        {"title": "Illinois", "value": "chicago,illinois"},
        {"title": "Deals and Discounts", "value": "black\\s*friday,\\bdeals?\\b,discount,coupon"}
    ]
}
"""

HN_FRONT_PAGE = [
    "So You Want to Build Your Own Data Center",
    "Maze Generation: Recursive Division (2011)",
    "Swedish Exports of Ball Bearings",
    "Obelisks",
    "Bluesky accounts add 10k followers per day",
]


def title_filter(*values: str) -> TitleFilter:
    return TitleFilter.from_filters([ItemFilter(title="PLs", value=v) for v in values])


class TestCompileFilters:
    def test_splits_on_commas(self):
        compiled = compile_filters([ItemFilter("a", "rust,go"), ItemFilter("b", "zig")])
        assert [p.pattern for p in compiled] == ["rust", "go", "zig"]

    def test_invalid_pattern_dropped(self, caplog):
        compiled = compile_filters([ItemFilter("bad", "ok,(unclosed,fine")])
        assert [p.pattern for p in compiled] == ["ok", "fine"]
        assert "(unclosed" in caplog.text

    def test_empty_tokens_skipped(self):
        assert len(compile_filters([ItemFilter("a", "x,,y,")])) == 2

    def test_production_config(self):
        config = AppConfig.from_dict(json.loads(PRODUCTION_CONFIG))
        assert len(config.filters) == 29
        assert len(TitleFilter.from_filters(config.filters)) == 105


class TestTitleFilter:
    def test_multiple_simple_filters(self):
        f = title_filter("cool", "awesome")
        assert sum(f.keep(t) for t in TITLES) == 3

    def test_regex_filter(self):
        f = title_filter(r"some\b")
        kept = [t for t in TITLES if f.keep(t)]
        assert kept == ["Rust is awesome", "Dart is some thing"]

    def test_case_insensitive(self):
        f = title_filter("RUST")
        assert f.keep("rust is fast")
        assert f.keep("Rust Is Fast")

    def test_reverse_is_negation(self):
        f = title_filter("cool", "awesome")
        for t in TITLES:
            assert f.keep(t, reverse=True) == (not f.keep(t))

    def test_empty_pattern_set(self):
        f = TitleFilter([])
        assert not f.keep("anything")
        assert f.keep("anything", reverse=True)

    def test_production_config_keeps_nothing(self):
        config = AppConfig.from_dict(json.loads(PRODUCTION_CONFIG))
        f = TitleFilter.from_filters(config.filters)
        assert [t for t in HN_FRONT_PAGE if f.keep(t)] == []
        assert [t for t in HN_FRONT_PAGE if f.keep(t, reverse=True)] == HN_FRONT_PAGE


class TestDomainBlacklist:
    @pytest.fixture
    def blacklist(self):
        return DomainBlacklist(["www.nytimes.com", "Twitter.com"])

    @pytest.mark.parametrize(
        "url",
        [
            "https://www.nytimes.com/2024/01/01/story.html",
            "http://twitter.com/someone",
            "https://TWITTER.COM./x",
        ],
    )
    def test_blacklisted(self, blacklist, url):
        assert blacklist.is_blacklisted(url)

    @pytest.mark.parametrize(
        "url",
        ["", "-", "not a url", "https://nytimes.com/", "https://mobile.twitter.com/x", "https://example.com"],
    )
    def test_not_blacklisted(self, blacklist, url):
        assert not blacklist.is_blacklisted(url)

    def test_empty_blacklist(self):
        assert not DomainBlacklist([]).is_blacklisted("https://www.nytimes.com")


class TestMissingUrl:
    @pytest.mark.parametrize("url", ["", "   ", "-", None])
    def test_missing(self, url):
        assert is_missing_url(url)

    def test_present(self):
        assert not is_missing_url("https://example.com")


class TestDeduplicate:
    def test_first_url_wins(self):
        items = [
            make_item(1, "Item #1", "https://example.com"),
            make_item(2, "Item #2", "https://example.org"),
            make_item(3, "Some other name for item #1", "https://example.com"),
            make_item(4, "Item #2 duplicate", "https://example.org"),
        ]
        assert [i.id for i in deduplicate(items)] == [1, 2]

    def test_exact_match_only(self):
        items = [
            make_item(1, url="https://example.com"),
            make_item(2, url="https://example.com/"),
            make_item(3, url="HTTPS://EXAMPLE.COM"),
        ]
        assert len(deduplicate(items)) == 3

    def test_empty(self):
        assert deduplicate([]) == []
