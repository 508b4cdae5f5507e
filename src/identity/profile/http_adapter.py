"""Profile gateway backed by the storefront backend's ``/user/profile`` endpoints.

Saved profile addresses name the street line ``street``; checkout drafts
call it ``address``.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from identity.profile.port import ProfileGateway
from identity.session import User
from shared.http import HttpClient, auth_cookies


class ProfileAddressSchema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    street: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    country: str = "US"

    @classmethod
    def from_draft(cls, draft: dict[str, str]) -> "ProfileAddressSchema":
        values = {key: value for key, value in draft.items() if key in cls.model_fields and value is not None}
        return cls(street=draft.get("address") or "", **values)

    def to_draft(self) -> dict[str, str]:
        draft = self.model_dump(exclude={"street"})
        draft["address"] = self.street
        return draft


class ProfileSchema(BaseModel):
    model_config = ConfigDict(extra="ignore")

    addresses: list[ProfileAddressSchema] | ProfileAddressSchema | None = None

    @property
    def primary_address(self) -> ProfileAddressSchema | None:
        if isinstance(self.addresses, ProfileAddressSchema):
            return self.addresses
        return self.addresses[0] if self.addresses else None


class HttpProfileGateway(ProfileGateway):
    def __init__(self, base_url: str, *, timeout: float = 10.0) -> None:
        self.client = HttpClient(base_url, timeout=timeout)

    async def get_saved_address(self, user: User) -> dict[str, str] | None:
        body = await self.client.get("/user/profile", cookies=auth_cookies(user))
        profile = ProfileSchema.model_validate(body.get("user") or {})
        primary = profile.primary_address
        return primary.to_draft() if primary else None

    async def save_shipping_address(self, user: User, address: dict[str, str]) -> None:
        await self.client.post(
            "/user/profile/shipping",
            json={"address": ProfileAddressSchema.from_draft(address).model_dump(by_alias=True)},
            cookies=auth_cookies(user),
        )
