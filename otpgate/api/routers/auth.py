from __future__ import annotations
from typing import Annotated, Union

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, EmailStr, Field, StringConstraints, field_validator

from ..deps import AuthServices, get_services
from ...services.registration import register_account

router = APIRouter(tags=["auth"])

NonEmpty = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class _EmailIn(BaseModel):
    email: EmailStr

    @field_validator("email", mode="after")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class RegisterIn(_EmailIn):
    name: NonEmpty
    password: str = Field(min_length=1)


class LoginIn(_EmailIn):
    password: str = Field(min_length=1)


class VerifyOtpIn(_EmailIn):
    otp: Union[int, NonEmpty]

    @field_validator("otp", mode="after")
    @classmethod
    def reject_zero(cls, v):
        # a numeric 0 counts as no OTP at all
        if isinstance(v, int) and v == 0:
            raise ValueError("OTP is required")
        return v


class MessageOut(BaseModel):
    message: str


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=MessageOut)
async def register(payload: RegisterIn, services: AuthServices = Depends(get_services)):
    await register_account(
        services.store,
        services.hasher,
        name=payload.name,
        identity=payload.email,
        password=payload.password,
    )
    return {"message": "User registered successfully! Please login to receive OTP."}


@router.post("/login", response_model=MessageOut)
async def login(payload: LoginIn, services: AuthServices = Depends(get_services)):
    await services.login.login(payload.email, payload.password)
    return {"message": "OTP sent to your email!"}


@router.post("/verify-otp", response_model=MessageOut)
async def verify_otp(payload: VerifyOtpIn, services: AuthServices = Depends(get_services)):
    await services.verification.verify(payload.email, payload.otp)
    return {"message": "OTP verified successfully!"}
