"""Contact schemas - Pydantic models for validation"""

from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class ContactForm(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    subject: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=10, max_length=2000)
    honeypot: Optional[str] = None  # hidden field, bots fill it in


class ContactResponse(BaseModel):
    success: bool = True
    message: str
    messageId: Optional[str] = None
