from enum import Enum
from typing import List
from pydantic import BaseModel


class Direction(str, Enum):
    GET = "GET"
    PUT = "PUT"

    @property
    def client_method(self) -> str:
        return "get_object" if self is Direction.GET else "put_object"


class PresignedUrl(BaseModel):
    url: str
    key: str
    method: Direction
    expires_in: int


class SyncReport(BaseModel):
    uploaded: List[str] = []
    deleted: List[str] = []
