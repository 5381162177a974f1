from pydantic import BaseModel, ConfigDict, Field, EmailStr
from typing import List

# Stored documents; each class name maps to a collection name (lowercased)

class User(BaseModel):
    name: str = Field(..., min_length=1, description="Lowercased display name")
    email: EmailStr
    password_hash: str = Field(..., description="Salted password hash")
    tokens: List[str] = Field(default_factory=list, description="Active session tokens")

class Item(BaseModel):
    owner: str = Field(..., description="Id of the user who created the item")
    name: str
    description: str = ""
    category: str = ""
    price: float = Field(..., ge=0)

class CartLine(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    item_id: str = Field(..., alias="itemId")
    name: str
    quantity: int = Field(1, ge=1)
    price: float = Field(..., ge=0, description="Unit price snapshot taken when the item was added")

class Cart(BaseModel):
    owner: str = Field(..., description="Id of the user owning the cart, one cart per user")
    items: List[CartLine] = Field(default_factory=list)
    bill: float = Field(0, ge=0)
    version: int = Field(0, description="Bumped on every mutation, used for compare-and-swap")

# Request bodies

class RegisterRequest(BaseModel):
    name: str
    email: str
    password: str

class LoginRequest(BaseModel):
    email: str
    password: str

class AddToCartRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    item_id: str = Field(..., alias="itemId")
    quantity: int = Field(1, ge=1)
