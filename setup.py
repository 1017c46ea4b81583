from setuptools import setup, find_packages

setup(
    name="bucketgate",
    version="0.1.0",
    packages=find_packages(include=["bucketgate", "bucketgate.*"]),
    python_requires=">=3.11",
    install_requires=[
        "redis>=5.0",
        "pydantic>=2.0",
        "pydantic-settings>=2.0",
        "fastapi>=0.100",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
            "httpx>=0.24",
        ],
    },
)
