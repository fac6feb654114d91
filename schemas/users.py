from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Optional


class CamelModel(BaseModel):
    # Clients speak camelCase, handlers use snake_case
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegisterRequest(CamelModel):
    first_name: str
    last_name: str
    email: str
    password: str

class LoginRequest(CamelModel):
    email: str
    password: str

class UserUpdateRequest(CamelModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    bio: Optional[str] = None
    image: Optional[str] = None
    sessions_attended: Optional[int] = None

class UserData(CamelModel):
    id: str
    first_name: str
    last_name: str
    email: str
    bio: Optional[str] = None
    image: Optional[str] = None
    sessions_attended: int = 0

class AuthResponse(CamelModel):
    jwt: str
    user_data: UserData
