import asyncio
import logging

from dotenv import load_dotenv
from getpass import getpass
import os
from nio import AsyncClient, LoginResponse


load_dotenv()

DEVICE_NAME = "clipper"


def _resolve_homeserver() -> str:
    homeserver = os.getenv("MATRIX_HOMESERVER_URL")
    if homeserver:
        return homeserver
    return input("Homeserver URL (e.g. https://matrix.org): ").strip()


def _resolve_user_id() -> str:
    user_id = os.getenv("MATRIX_USER_ID")
    if user_id:
        return user_id
    return input("User ID (e.g. @clipper:matrix.org): ").strip()


def _resolve_password() -> str:
    password = os.getenv("MATRIX_PASSWORD")
    if password:
        return password
    return getpass("Password: ")


async def login(client: AsyncClient, password: str) -> LoginResponse:
    response = await client.login(password, device_name=DEVICE_NAME)
    if not isinstance(response, LoginResponse):
        raise RuntimeError(f"Matrix login failed: {response}")
    return response


async def main() -> None:
    client = AsyncClient(_resolve_homeserver(), _resolve_user_id())
    try:
        response = await login(client, _resolve_password())
    finally:
        await client.close()

    logging.info("Logged in as: %s", response.user_id)
    print("")
    print("Add these to your .env:")
    print(f"MATRIX_ACCESS_TOKEN={response.access_token}")
    print(f"MATRIX_USER_ID={response.user_id}")
    print(f"MATRIX_DEVICE_ID={response.device_id}")


if __name__ == "__main__":
    asyncio.run(main())
