from pydantic import BaseModel, Field


class RegisterRequest(BaseModel):
    """Request model for registration - input validation"""

    address: str = Field(..., description="Account address, 0x followed by 40 hex characters")


class RegisterResponse(BaseModel):
    """Response model for registration - output"""

    address: str


class NonceResponse(BaseModel):
    """Response model for nonce lookup - output"""

    nonce: str = ""


class SigninRequest(BaseModel):
    """Request model for sign-in - input validation"""

    address: str = Field(..., description="Account address")
    nonce: str = Field(..., description="Nonce that was signed")
    sig: str = Field(..., description="personal_sign signature of the nonce, hex encoded")


class SigninResponse(BaseModel):
    """Response model for sign-in - output"""

    access: str
    token_type: str = "bearer"


class WelcomeResponse(BaseModel):
    msg: str


class HealthCheck(BaseModel):
    status: str = "ok"
