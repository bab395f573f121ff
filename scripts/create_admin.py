# flake8: noqa
# scripts/create_admin.py

import asyncio
import typer
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.database import get_async_session_context
from app.domains.usr import crud as usr_crud
from app.domains.usr import schemas as usr_schemas
from app.domains.usr.models import UserRole

cli = typer.Typer()


async def create_admin_user(db: AsyncSession, user_in: usr_schemas.UserCreate) -> bool:
    """
    데이터베이스에 관리자 사용자를 생성하는 비동기 함수
    """
    if user_in.email and await usr_crud.user.get_by_email(db, email=user_in.email):
        print(f"오류: 이미 존재하는 이메일입니다: {user_in.email}")
        return False

    if await usr_crud.user.get_by_username(db, username=user_in.username):
        print(f"오류: 이미 존재하는 사용자명입니다: {user_in.username}")
        return False

    await usr_crud.user.create(db, obj_in=user_in)
    print(f"관리자 계정이 성공적으로 생성되었습니다: {user_in.username}")
    return True


async def reset_password(db: AsyncSession, username: str, password: str) -> bool:
    """기존 사용자의 비밀번호를 재설정합니다."""
    db_user = await usr_crud.user.get_by_username(db, username=username)
    if db_user is None:
        print(f"오류: 사용자를 찾을 수 없습니다: {username}")
        return False
    await usr_crud.user.change_password(db, user=db_user, new_password=password)
    print(f"비밀번호가 변경되었습니다: {username}")
    return True


@cli.command()
def create(
    username: str = typer.Option(
        ..., '--username', '-u',
        prompt="관리자 사용자명(ID)을 입력하세요",
        help="로그인 시 사용할 사용자명(ID)입니다."
    ),
    password: str = typer.Option(
        ..., '--password', '-p',
        prompt="관리자 비밀번호를 입력하세요",
        hide_input=True,
        confirmation_prompt=True,
        help="생성할 관리자 계정의 비밀번호입니다. (최소 8자 이상)"
    ),
    email: str = typer.Option(None, '--email', '-e', help="관리자 이메일 주소입니다."),
    full_name: str = typer.Option("Admin", '--name', '-n', help="관리자의 이름입니다."),
    superuser: bool = typer.Option(False, '--superuser', help="SUPERUSER 역할로 생성합니다."),
):
    """
    MWIMS 애플리케이션을 위한 새로운 관리자(Admin/Superuser)를 생성합니다.
    """
    if len(password) < 8:
        print("오류: 비밀번호는 최소 8자 이상이어야 합니다.")
        raise typer.Abort()

    user_data = usr_schemas.UserCreate(
        username=username,
        email=email,
        password=password,
        full_name=full_name,
        role=UserRole.SUPERUSER if superuser else UserRole.ADMIN,
    )

    async def run_creation() -> bool:
        async with get_async_session_context() as db:
            return await create_admin_user(db=db, user_in=user_data)

    if not asyncio.run(run_creation()):
        raise typer.Exit(code=1)


@cli.command("set-password")
def set_password(
    username: str = typer.Option(..., '--username', '-u', prompt="사용자명(ID)을 입력하세요"),
    password: str = typer.Option(
        ..., '--password', '-p',
        prompt="새 비밀번호를 입력하세요",
        hide_input=True,
        confirmation_prompt=True,
    ),
):
    """기존 계정의 비밀번호를 재설정합니다."""
    if len(password) < 8:
        print("오류: 비밀번호는 최소 8자 이상이어야 합니다.")
        raise typer.Abort()

    async def run_reset() -> bool:
        async with get_async_session_context() as db:
            return await reset_password(db, username, password)

    if not asyncio.run(run_reset()):
        raise typer.Exit(code=1)


if __name__ == "__main__":
    cli()
