from pydantic import BaseModel, Field


class RunRequest(BaseModel):
    user: str = Field(min_length=1, max_length=128)
    task: str = Field(min_length=1, max_length=128)
    code: str
