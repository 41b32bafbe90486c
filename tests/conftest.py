import aiohttp
import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from surfex.config import HuntConfig

PAGE = "<html><head><title> Example </title></head><body><p>hello</p></body></html>"


def site_app(hits):
    async def record(request):
        hits.append(request.path)

    async def root(request):
        await record(request)
        return web.Response(text=PAGE, content_type="text/html", headers={"Server": "nginx/1.25.3"})

    async def old(request):
        await record(request)
        raise web.HTTPFound("/new")

    async def new(request):
        await record(request)
        return web.Response(text="moved here", content_type="text/plain")

    async def away(request):
        await record(request)
        raise web.HTTPFound(f"http://localhost:{request.url.port}/elsewhere")

    async def elsewhere(request):
        await record(request)
        return web.Response(text="other host", content_type="text/plain")

    async def logo(request):
        await record(request)
        return web.Response(body=b"\x89PNG\r\n", content_type="image/png")

    async def challenge(request):
        await record(request)
        return web.Response(text="<title>Just a moment... | Cloudflare</title>", content_type="text/html")

    async def private(request):
        await record(request)
        return web.Response(status=403, text="<title>Forbidden</title>", content_type="text/html")

    async def env(request):
        await record(request)
        return web.Response(status=404, text="not here", content_type="text/plain")

    async def find(request):
        await record(request)
        raise web.HTTPFound("/results?q=shoes")

    async def results(request):
        await record(request)
        q = request.query.get("q", "")
        return web.Response(text=f"<html><title>Results</title><p>{q}</p></html>", content_type="text/html")

    app = web.Application()
    app.router.add_get("/", root)
    app.router.add_get("/old", old)
    app.router.add_get("/older", old)
    app.router.add_get("/new", new)
    app.router.add_get("/away", away)
    app.router.add_get("/elsewhere", elsewhere)
    app.router.add_get("/logo.png", logo)
    app.router.add_get("/challenge", challenge)
    app.router.add_get("/private", private)
    app.router.add_get("/.env", env)
    app.router.add_get("/find", find)
    app.router.add_get("/results", results)
    return app


def throttled_app(hits):
    async def handler(request):
        hits.append(request.path)
        return web.Response(status=429, text="slow down")

    app = web.Application()
    app.router.add_get("/{tail:.*}", handler)
    return app


async def _start(app, hits):
    srv = TestServer(app, host="127.0.0.1")
    await srv.start_server()
    srv.hits = hits
    return srv


@pytest.fixture
async def site():
    hits = []
    srv = await _start(site_app(hits), hits)
    yield srv
    await srv.close()


@pytest.fixture
async def throttled():
    hits = []
    srv = await _start(throttled_app(hits), hits)
    yield srv
    await srv.close()


@pytest.fixture
async def session():
    async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=10)) as s:
        yield s


@pytest.fixture
def make_config(tmp_path):
    def factory(port=None, wordlist=("",), **kwargs):
        ports = {port: "http"} if port else {}
        kwargs.setdefault("concurrency", 20)
        return HuntConfig(
            result_file=str(tmp_path / "hunt.json"),
            workdir=str(tmp_path),
            ports=ports,
            http_ports=set(ports),
            tls_ports=set(),
            wordlist=list(wordlist),
            **kwargs,
        )
    return factory
