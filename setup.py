from setuptools import find_packages, setup

setup(
    name="dynamo-es-stream",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "boto3>=1.26.0",
        "pydantic>=2.0",
        "pydantic-settings>=2.0",
        "tenacity>=8.0",
        "elasticsearch[async]>=8.0",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
            "pytest-cov",
            "moto",
        ]
    },
)
