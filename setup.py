from setuptools import setup, find_packages

setup(
    name="tasmota-manager",
    version="0.1.0",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    package_data={"tasmota_manager": ["resources/*.yaml"]},
    include_package_data=True,
    install_requires=[
        "fastapi>=0.104.1",
        "uvicorn>=0.24.0",
        "pydantic>=2.4.2",
        "typer>=0.9.0",
        "rich>=13.7.0",
        "pyyaml>=6.0.1",
        "aiohttp>=3.9.1",
        "yarl>=1.9.2",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.3",
            "httpx>=0.25.1",
        ],
    },
    entry_points={
        "console_scripts": [
            "tasmota-manager=tasmota_manager.interfaces.cli.main:app",
        ],
    },
    python_requires=">=3.10",
    author="Tasmota Manager contributors",
    description="Self-discovering poller and command dispatcher for Tasmota devices",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
