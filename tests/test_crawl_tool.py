from collections import Counter

import pytest

from site_mirror.errors import SizeLimitExceeded

from conftest import SITE, crawl, files_under, soup_of


def test_single_page_with_stylesheet(site, config, tmp_path):
    site.page(
        f"{SITE}/",
        '<html><head><link rel="stylesheet" href="/css/site.css"></head><body>Hi</body></html>',
    )
    site.asset(f"{SITE}/css/site.css", b"body{margin:0}", "text/css")
    work = tmp_path / "work"

    engine = crawl(site, config, work, f"{SITE}/")

    assert files_under(work) == {"index.html", "css/site.css"}
    assert soup_of(work / "index.html").find("link")["href"] == "css/site.css"
    assert engine.total_bytes == (work / "index.html").stat().st_size + len(b"body{margin:0}")


def test_pages_linking_each_other_are_fetched_once(site, config, tmp_path):
    site.page(f"{SITE}/a", '<html><body><a href="/b">b</a><a href="/a">self</a></body></html>')
    site.page(f"{SITE}/b", '<html><body><a href="/a">a</a></body></html>')
    work = tmp_path / "work"

    crawl(site, config, work, f"{SITE}/a")

    assert site.count(f"{SITE}/a") == 1
    assert site.count(f"{SITE}/b") == 1
    assert files_under(work) == {"a.html", "b.html"}
    assert soup_of(work / "a.html").find("a")["href"] == "b.html"
    assert soup_of(work / "b.html").find("a")["href"] == "a.html"


def test_cross_origin_asset_goes_under_assets_host(site, config, tmp_path):
    site.page(f"{SITE}/", '<html><body><img src="https://cdn.example.com/img/logo.png"></body></html>')
    site.asset("https://cdn.example.com/img/logo.png", b"PNG", "image/png")
    work = tmp_path / "work"

    crawl(site, config, work, f"{SITE}/")

    assert files_under(work) == {"index.html", "assets/cdn.example.com/img/logo.png"}
    assert not (work / "img").exists()
    assert soup_of(work / "index.html").find("img")["src"] == "assets/cdn.example.com/img/logo.png"


def test_no_url_is_fetched_twice(site, config, tmp_path):
    shared = '<link rel="stylesheet" href="/css/shared.css"><img src="/img/logo.png">'
    site.page(
        f"{SITE}/",
        f'<html><head>{shared}</head><body><a href="/a">a</a><a href="/b">b</a><a href="/a#x">a</a></body></html>',
    )
    site.page(f"{SITE}/a", f'<html><head>{shared}</head><body><a href="/b">b</a><a href="/">home</a></body></html>')
    site.page(f"{SITE}/b", f'<html><head>{shared}</head><body><a href="/a?utm=1">a</a></body></html>')
    site.asset(f"{SITE}/css/shared.css", b"p{}", "text/css")
    site.asset(f"{SITE}/img/logo.png", b"PNG", "image/png")
    work = tmp_path / "work"

    crawl(site, config, work, f"{SITE}/")

    counts = Counter(site.requests)
    assert counts and max(counts.values()) == 1
    for page in ("a.html", "b.html"):
        soup = soup_of(work / page)
        assert soup.find("link")["href"] == "css/shared.css"
        assert soup.find("img")["src"] == "img/logo.png"


def test_frontier_is_drained_breadth_first(site, config, tmp_path):
    narrow = config.model_copy(
        update={"crawl_limits": config.crawl_limits.model_copy(update={"wave_size": 2})}
    )
    site.page(
        f"{SITE}/",
        '<a href="/p1">1</a><a href="/p2">2</a><a href="/p3">3</a>',
    )
    site.page(f"{SITE}/p1", '<a href="/p1/deep">deep</a>')
    site.page(f"{SITE}/p2", "<p>two</p>")
    site.page(f"{SITE}/p3", "<p>three</p>")
    site.page(f"{SITE}/p1/deep", "<p>deep</p>")

    engine = crawl(site, narrow, tmp_path / "work", f"{SITE}/")

    assert engine.claim_order == [
        f"{SITE}/",
        f"{SITE}/p1",
        f"{SITE}/p2",
        f"{SITE}/p3",
        f"{SITE}/p1/deep",
    ]


def test_link_target_path_matches_where_target_is_written(site, config, tmp_path):
    site.page(f"{SITE}/blog/", '<a href="post-one">one</a><a href="../about">about</a>')
    site.page(f"{SITE}/blog/post-one", "<p>one</p>")
    site.page(f"{SITE}/about", "<p>about</p>")
    work = tmp_path / "work"

    crawl(site, config, work, f"{SITE}/blog/")

    hrefs = [a["href"] for a in soup_of(work / "blog" / "index.html").find_all("a")]
    assert hrefs == ["post-one.html", "../about.html"]
    for href in hrefs:
        assert (work / "blog" / href).resolve().is_file()


def test_failed_page_does_not_stop_crawl(site, config, tmp_path):
    site.page(f"{SITE}/", '<a href="/broken">x</a><a href="/ok">y</a>')
    site.status(f"{SITE}/broken", 500)
    site.page(f"{SITE}/ok", "<p>fine</p>")
    work = tmp_path / "work"

    engine = crawl(site, config, work, f"{SITE}/")

    assert site.count(f"{SITE}/broken") == 3
    assert engine.failed_pages == [f"{SITE}/broken"]
    assert files_under(work) == {"index.html", "ok.html"}


def test_page_recovers_after_transient_failures(site, config, tmp_path):
    site.page(f"{SITE}/", '<a href="/flaky">x</a>')
    site.page(f"{SITE}/flaky", "<p>eventually</p>").fail(f"{SITE}/flaky", 2)
    work = tmp_path / "work"

    crawl(site, config, work, f"{SITE}/")

    assert "flaky.html" in files_under(work)


def test_asset_failure_does_not_abort_page(site, config, tmp_path):
    site.page(f"{SITE}/", '<img src="/img/gone.png"><img src="/img/ok.png">')
    site.asset(f"{SITE}/img/ok.png", b"OK").fail(f"{SITE}/img/gone.png", 3)
    work = tmp_path / "work"

    crawl(site, config, work, f"{SITE}/")

    srcs = [img["src"] for img in soup_of(work / "index.html").find_all("img")]
    assert srcs == ["/img/gone.png", "img/ok.png"]


def _size_site(site):
    site.page(f"{SITE}/", '<html><body><a href="/a">a</a><img src="/img/big.png"></body></html>')
    site.page(f"{SITE}/a", "<html><body>page a</body></html>")
    site.asset(f"{SITE}/img/big.png", b"x" * 2000, "image/png")


def _with_limit(config, limit):
    return config.model_copy(
        update={"crawl_limits": config.crawl_limits.model_copy(update={"max_total_bytes": limit})}
    )


def test_size_ceiling_is_inclusive(site, config, tmp_path):
    _size_site(site)
    total = crawl(site, config, tmp_path / "measure", f"{SITE}/").total_bytes

    engine = crawl(site, _with_limit(config, total), tmp_path / "work", f"{SITE}/")

    assert engine.total_bytes == total


def test_size_ceiling_exceeded_stops_crawl(site, config, tmp_path):
    _size_site(site)
    total = crawl(site, config, tmp_path / "measure", f"{SITE}/").total_bytes

    with pytest.raises(SizeLimitExceeded) as info:
        crawl(site, _with_limit(config, total - 1), tmp_path / "work", f"{SITE}/")
    assert info.value.limit == total - 1


def test_size_ceiling_checked_after_each_wave(site, config, tmp_path):
    _size_site(site)
    site.requests.clear()

    with pytest.raises(SizeLimitExceeded):
        crawl(site, _with_limit(config, 1000), tmp_path / "work", f"{SITE}/")

    assert site.count(f"{SITE}/a") == 0


def test_linked_file_does_not_overwrite_embedded_asset(site, config, tmp_path):
    png = b"\x89PNG\r\n\x1a\n\x00\xffbinary"
    site.page(
        f"{SITE}/",
        '<html><body><img src="/img/big.png"><a href="/img/big.png">zoom</a>'
        '<a href="/docs/manual.pdf">manual</a></body></html>',
    )
    site.asset(f"{SITE}/img/big.png", png, "image/png")
    site.asset(f"{SITE}/docs/manual.pdf", b"%PDF-1.4\n\xe2\xe3", "application/pdf")
    work = tmp_path / "work"

    engine = crawl(site, config, work, f"{SITE}/")

    assert (work / "img" / "big.png").read_bytes() == png
    assert files_under(work) == {"index.html", "img/big.png"}
    assert set(engine.skipped_pages) == {f"{SITE}/img/big.png", f"{SITE}/docs/manual.pdf"}
    assert engine.failed_pages == []
    assert engine.total_bytes == (work / "index.html").stat().st_size + len(png)


def test_default_port_target_crawls_the_whole_site(site, config, tmp_path):
    site.page(f"{SITE}/", f'<html><body><a href="{SITE}/b">b</a></body></html>')
    site.page(f"{SITE}/b", '<html><body><a href="https://example.webflow.io:443/">home</a></body></html>')
    work = tmp_path / "work"

    engine = crawl(site, config, work, "https://example.webflow.io:443/")

    assert site.requests == [f"{SITE}/", f"{SITE}/b"]
    assert files_under(work) == {"index.html", "b.html"}
    assert soup_of(work / "index.html").find("a")["href"] == "b.html"
    assert soup_of(work / "b.html").find("a")["href"] == "index.html"
    assert engine.origin == SITE
