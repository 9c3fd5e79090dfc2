from pydantic import BaseModel

# Callback / playback confirmation
class MessageResponse(BaseModel):
    message: str


# Every failure path answers with this shape
class ErrorResponse(BaseModel):
    error: str
