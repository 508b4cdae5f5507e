"""HttpProfileGateway against a local stand-in for the storefront backend."""

import pytest
from aiohttp import web

from identity.profile.http_adapter import HttpProfileGateway


@pytest.fixture()
async def backend(serve):
    profiles = {
        "tok-alice": {
            "addresses": [
                {
                    "firstName": "Alice",
                    "lastName": "Moss",
                    "street": "12 Orchard Lane",
                    "city": "Portland",
                    "state": "OR",
                    "zipCode": "97201",
                    "country": "US",
                }
            ]
        },
        "tok-bob": {},
    }
    saved: list[dict] = []
    routes = web.RouteTableDef()

    @routes.get("/api/user/profile")
    async def profile(request):
        return web.json_response({"user": profiles[request.cookies["token"]]})

    @routes.post("/api/user/profile/shipping")
    async def save(request):
        saved.append(await request.json())
        return web.json_response({"success": True})

    base_url = await serve(routes)
    return {"url": base_url, "saved": saved}


class TestHttpProfileGateway:
    async def test_reads_primary_address_as_draft(self, backend, alice):
        gateway = HttpProfileGateway(backend["url"])

        draft = await gateway.get_saved_address(alice)

        assert draft["address"] == "12 Orchard Lane"
        assert draft["zip_code"] == "97201"
        assert "street" not in draft

    async def test_profile_without_addresses(self, backend, bob):
        gateway = HttpProfileGateway(backend["url"])

        assert await gateway.get_saved_address(bob) is None

    async def test_saves_draft_with_street_line(self, backend, alice, shipping_details):
        gateway = HttpProfileGateway(backend["url"])

        await gateway.save_shipping_address(alice, shipping_details)

        address = backend["saved"][0]["address"]
        assert address["street"] == "12 Orchard Lane"
        assert address["zipCode"] == "97201"
        assert address["firstName"] == "Alice"
