from setuptools import setup, find_namespace_packages

setup(
    name="jmcc_dashboard",
    version="0.1.0",
    packages=find_namespace_packages(include=["jmcc_dashboard", "jmcc_dashboard.*"]),
    package_data={"jmcc_dashboard.services": ["alert_rules.yaml"]},
    install_requires=[
        "fastapi",
        "uvicorn",
        "pydantic>=2",
        "sqlalchemy[asyncio]>=2",
        "asyncpg",
        "python-jose[cryptography]",
        "passlib[bcrypt]",
        "bcrypt<5",
        "python-dotenv",
        "pyyaml"
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
            "httpx"
        ]
    },
)
