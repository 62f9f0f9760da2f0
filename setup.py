from setuptools import setup, find_namespace_packages

setup(
    name="ship_assistant",
    version="0.1.0",
    packages=find_namespace_packages(include=["ship_assistant", "ship_assistant.*"]),
    package_data={"ship_assistant.services": ["*.yaml"]},
    python_requires=">=3.9",
    install_requires=[
        "fastapi",
        "uvicorn",
        "httpx",
        "pydantic>=2",
        "python-dotenv",
        "pyyaml"
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio"
        ]
    },
)
