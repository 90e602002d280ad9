import os
from setuptools import setup, find_packages

SERVICE_SOURCES = {
    "ridelog_common": "services/ridelog-common/src",
    "activity_ingestion": "services/activity_ingestion/src",
    "activity_retrieval": "services/activity_retrieval/src",
}

packages = []
package_dir = {}
for name, source in SERVICE_SOURCES.items():
    found = find_packages(where=source, include=[name, f"{name}.*"])
    packages.extend(found)
    for package in found:
        package_dir[package] = os.path.join(source, *package.split("."))

setup(
    name="ridelog",
    version="0.1.0",
    packages=packages,
    package_dir=package_dir,
    install_requires=[
        "fastapi>=0.110.0",
        "uvicorn>=0.27.0",
        "pydantic>=2.5.0",
        "pydantic-settings>=2.1.0",
        "redis>=5.0.0",
        "sqlalchemy[asyncio]>=2.0.0",
        "asyncpg>=0.29.0",
        "fitparse>=1.2.0",
        "prometheus_client>=0.19.0",
        "google-cloud-storage>=2.14.0",
        "python-jose[cryptography]>=3.3.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.23.0",
            "httpx>=0.26.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "activity-ingestion=activity_ingestion.main:main",
            "activity-retrieval=activity_retrieval.main:main",
            "activity-reconcile=activity_ingestion.reconcile:main",
        ],
    },
    author="Aiden Gindin",
    author_email="aiden@aidengindin.com",
    description="Ride activity ingestion: FIT files to compressed JSON plus a query service",
    long_description=open("README.md").read() if os.path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    url="https://github.com/aidengindin/KineticAI",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.10",
)
