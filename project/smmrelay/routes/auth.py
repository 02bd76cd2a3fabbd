# smmrelay/routes/auth.py

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from jwt import ExpiredSignatureError, InvalidTokenError
from sqlalchemy.future import select

from smmrelay.models.user import User as UserModel
from smmrelay.schemas.user import UserResponse
from smmrelay.utils.security import create_access_token, decode_access_token, verify_password

router = APIRouter()

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")


async def _find_user(request: Request, login: str) -> UserModel | None:
    result = await request.state.db.execute(select(UserModel).where(UserModel.login == login))
    return result.scalar_one_or_none()


async def get_current_user(request: Request, token: str = Depends(oauth2_scheme)) -> UserModel:
    """
    Проверяет JWT токен и возвращает пользователя.

    **Статусы:**
    - 401 Unauthorized – токен истёк, неверный, или пользователь не найден
    """
    log = request.app.state.log
    try:
        payload = decode_access_token(token)
    except ExpiredSignatureError:
        await log.log_warning("auth", "Токен истёк")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired")
    except InvalidTokenError:
        await log.log_warning("auth", "Неверный токен")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token invalid")

    login = payload.get("sub")
    if login is None:
        await log.log_error("auth", "Токен не содержит login")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    user = await _find_user(request, login)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")

    return user


# ────────────── TOKEN ──────────────
@router.post(
    "/token",
    summary="Получение JWT токена",
    responses={
        200: {"description": "✅ Токен получен: access_token, token_type и данные пользователя"},
        401: {"description": "❌ Неверный логин или пароль"},
        422: {"description": "⚠️ Ошибка валидации входных данных"},
    }
)
async def login_for_access_token(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends()
):
    """
    Проверяет логин и пароль (form-data `username`, `password`)
    и возвращает JWT токен для заголовка `Authorization: Bearer ...`.
    """
    log = request.app.state.log

    user = await _find_user(request, form_data.username)
    if user is None or not verify_password(form_data.password, user.password):
        await log.log_warning("auth", "Неудачная попытка входа", {"username": form_data.username})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect login or password",
            headers={"WWW-Authenticate": "Bearer"}
        )

    access_token = create_access_token(data={"sub": user.login})
    await log.log_info("auth", "Пользователь авторизован", {"user_id": user.id})

    return {
        "access_token": access_token,
        "token_type": "bearer",
        "user": UserResponse.model_validate(user).model_dump(mode="json"),
    }


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Текущий пользователь",
    responses={401: {"description": "Токен невалиден"}},
)
async def read_me(current_user: UserModel = Depends(get_current_user)):
    return current_user
