from setuptools import setup, find_packages

setup(
    name="lms-backend",
    version="1.0.0",
    packages=find_packages(),
    package_data={"lms": ["alembic/env.py", "alembic/script.py.mako", "alembic/versions/*.py"]},
    install_requires=[
        "fastapi>=0.100.0",
        "uvicorn>=0.15.0",
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        "sqlalchemy[asyncio]>=2.0.0",
        "alembic>=1.7.0",
        "python-dotenv>=0.19.0",
        "PyJWT>=2.4.0",
        "redis>=4.2.0",
        "asyncpg>=0.27.0",
        "aiosqlite>=0.17.0",
        "python-multipart>=0.0.6",
        "reportlab>=4.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "httpx>=0.24.0",
        ],
    },
    python_requires=">=3.9",
)
