from setuptools import setup, find_packages

setup(
    name="usai-api",
    version="1.0.0",
    description="Python client for the USAi OpenAI-compatible API with retries and streaming",
    author="USAi API Contributors",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "httpx",
        "requests",
        "rich",
        "python-dotenv",
        "pwinput",
        "prompt_toolkit",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
        ],
    },
    entry_points={
        "console_scripts": [
            "usai=usai.main:main",
        ],
    },
    python_requires=">=3.8",
)
