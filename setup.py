from setuptools import setup, find_packages

setup(
    name="apodcache",
    version="0.1.0",
    packages=find_packages(include=["apodcache", "apodcache.*"]),
    python_requires=">=3.10",
    install_requires=[
        "fastapi>=0.110",
        "uvicorn>=0.27",
        "httpx>=0.27",
        "pydantic>=2.5",
        "pydantic-settings>=2.1",
        "sqlalchemy[asyncio]>=2.0",
        "asyncpg>=0.29",
        "aiosqlite>=0.19",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
            "respx>=0.21",
        ],
    },
    entry_points={
        "console_scripts": [
            "apodcache=apodcache.app.main:serve",
        ],
    },
)
