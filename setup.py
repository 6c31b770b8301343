from setuptools import setup, find_packages

setup(
    name="finance-ledger",
    version="1.0.0",
    packages=find_packages(exclude=["tests*", "migrations*"]),
    install_requires=[
        "fastapi",
        "python-jose[cryptography]",
        "sqlalchemy[asyncio]",
        "asyncpg",
        "pydantic",
        "alembic",
        "pika",
        "python-dateutil",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
            "aiosqlite",
            "httpx",
        ],
    },
)
