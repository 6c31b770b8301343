from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from datetime import datetime, timedelta, timezone
from typing import Optional
import os
import logging

# Configuración (Debe coincidir con el servicio que emite los tokens)
SECRET_KEY = os.getenv("JWT_SECRET_KEY", "SECRET_SUPER_SECRETO_CAMBIAME")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 30

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")

logger = logging.getLogger("ledger-security")

class UserPayload:
    def __init__(self, sub: str, user_id: int):
        self.sub = sub
        self.user_id = user_id

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Firma un token de acceso (lo usa el servicio de auth y las pruebas)."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)

def get_current_user(token: str = Depends(oauth2_scheme)) -> UserPayload:
    """
    Valida el token JWT y extrae el usuario.
    Si el token es falso o expiró, lanza error 401.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Credenciales inválidas o expiradas",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        email: str = payload.get("sub")
        user_id = payload.get("user_id")

        if email is None or user_id is None:
            raise credentials_exception

        return UserPayload(sub=email, user_id=int(user_id))
    except JWTError as e:
        logger.warning(f"Intento de acceso con token inválido: {e}")
        raise credentials_exception
