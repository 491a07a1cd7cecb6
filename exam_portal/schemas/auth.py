from pydantic import BaseModel


class SendOtpRequest(BaseModel):
    email: str | None = None


class VerifyOtpRequest(BaseModel):
    email: str | None = None
    otp: str | None = None


class StudentLoginRequest(BaseModel):
    email: str
    full_name: str = ""


class StudentOut(BaseModel):
    id: str
    email: str
    full_name: str
    role: str


class AuthResult(BaseModel):
    success: bool
    message: str | None = None


class TokenOut(BaseModel):
    success: bool = True
    message: str | None = None
    access_token: str
    token_type: str = "bearer"
    user: StudentOut


class AdminLoginRequest(BaseModel):
    email: str
    password: str
    passcode: str
