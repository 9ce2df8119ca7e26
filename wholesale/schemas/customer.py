from typing import Any, Optional

from pydantic import BaseModel, EmailStr, Field, model_validator

from wholesale.schemas.base import TimestampedSchema

# legacy payload keys accepted at the boundary, first match wins
_ALIASES: dict[str, tuple[str, ...]] = {
    "name": ("name", "contact_name", "customer_name"),
    "email": ("email", "customer_email"),
    "company": ("company", "business_name", "customer_company"),
    "phone": ("phone", "customer_phone"),
    "customer_id": ("customer_id",),
}


class CustomerInfo(BaseModel):
    """Normalized buyer contact details attached to an order."""

    name: Optional[str] = None
    email: Optional[EmailStr] = None
    company: Optional[str] = None
    phone: Optional[str] = None
    customer_id: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _collapse_aliases(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        out: dict[str, Any] = {}
        for field, keys in _ALIASES.items():
            for key in keys:
                value = data.get(key)
                if isinstance(value, str):
                    value = value.strip()
                if value not in (None, ""):
                    out[field] = value
                    break
        return out

    @property
    def is_complete(self) -> bool:
        return bool(self.name and self.email)

    @property
    def display_name(self) -> str:
        return self.company or self.name or self.email or "Customer"


class CustomerCreate(BaseModel):
    id: str = Field(..., min_length=1, max_length=64, pattern=r"^[A-Za-z0-9_.-]+$")
    business_name: str = Field(..., min_length=1, max_length=255)
    contact_name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=32)


class CustomerResponse(TimestampedSchema):
    id: str
    business_name: str
    contact_name: str
    email: str
    phone: Optional[str] = None


class CustomerLink(BaseModel):
    customer_id: str
    url: str
