# setup.py
from setuptools import setup, find_packages

setup(
    name="homesocial",           # Package name
    version="0.1",               # Version
    packages=find_packages(exclude=["test", "test.*"]),
    install_requires=[           # External dependencies
        "fastapi",
        "uvicorn",
        "asyncpg",
        "pydantic[email]",
        "python-multipart",
        "firebase-admin",
        "google-cloud-storage",
        "Pillow",
        "slowapi",
        "async-lru",
        "aiohttp",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
            "httpx",
            "polyfactory",
        ],
    },
    python_requires=">=3.10",
)
