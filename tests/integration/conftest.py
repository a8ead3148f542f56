"""A local aiohttp server standing in for the portal API and the media host."""

import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from config import Config

TOKEN = "valid-token"


def _listing(listing_id: int, title: str) -> dict:
    return {"id": listing_id, "title": title, "category": "for-sale", "status": "active"}


async def search(request: web.Request) -> web.Response:
    q = request.query.get("q", "")
    if q == "villa":
        return web.json_response({"success": True, "count": 0, "total": 0, "data": []})
    if q == "boom":
        return web.json_response({"success": False, "error": "Database exploded"}, status=500)
    if q == "garbled":
        return web.Response(text="{\"success\": tru", content_type="application/json")
    if q == "html":
        return web.Response(text="<html>maintenance</html>", content_type="text/html")
    listings = [_listing(1, "Beach villa"), _listing(2, "City apartment")]
    return web.json_response({"success": True, "count": 2, "total": 2, "data": listings})


async def signature(request: web.Request) -> web.Response:
    if request.headers.get("Authorization") != f"Bearer {TOKEN}":
        return web.json_response({"success": False, "error": "Not authorized to access this route"}, status=401)
    if request.app["state"]["broken_signature"]:
        return web.json_response({"success": True, "data": {"timestamp": 1700000000}})
    folder = request.query.get("folder") or "property-images"
    return web.json_response({
        "success": True,
        "data": {
            "timestamp": 1700000000,
            "signature": "abc123",
            "cloudName": "demo",
            "apiKey": "key123",
            "folder": folder,
            "uploadPreset": "mauritius",
        },
    })


async def media_upload(request: web.Request) -> web.Response:
    form = await request.post()
    upload = form["file"]
    request.app["uploads"].append({key: form[key] for key in form if key != "file"} | {"filename": upload.filename})
    if upload.filename == "bad.jpg":
        return web.json_response({"error": {"message": "Invalid image file"}}, status=400)
    stem = upload.filename.rsplit(".", 1)[0]
    return web.json_response({
        "secure_url": f"https://res.cloudinary.com/{request.match_info['cloud']}/{form['folder']}/{upload.filename}",
        "public_id": f"{form['folder']}/{stem}",
    })


async def save_images(request: web.Request) -> web.Response:
    if request.headers.get("Authorization") != f"Bearer {TOKEN}":
        return web.json_response({"success": False, "error": "Not authorized to access this route"}, status=401)
    body = await request.json()
    request.app["saved"].append((int(request.match_info["property_id"]), body))
    images = [{"id": i + 1, "url": img["url"], "public_id": img["publicId"]} for i, img in enumerate(body["cloudinaryUrls"])]
    return web.json_response({"success": True, "data": images})


@web.middleware
async def record_requests(request: web.Request, handler):
    request.app["requests"].append((request.method, request.path))
    return await handler(request)


@pytest_asyncio.fixture
async def fake_portal():
    app = web.Application(middlewares=[record_requests])
    app["requests"] = []
    app["uploads"] = []
    app["saved"] = []
    app["state"] = {"broken_signature": False}
    app.router.add_get("/api/properties/search", search)
    app.router.add_get("/api/{route}/cloudinary-signature", signature)
    app.router.add_post("/v1_1/{cloud}/image/upload", media_upload)
    app.router.add_post("/api/properties/{property_id}/images", save_images)

    server = TestServer(app)
    await server.start_server()
    yield server
    await server.close()


@pytest_asyncio.fixture
async def portal_config(fake_portal) -> Config:
    base = f"http://{fake_portal.host}:{fake_portal.port}"
    return Config(api_base_url=base, media_upload_url=base, upload_preset="mauritius")
