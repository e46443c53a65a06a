# setup.py
from setuptools import setup, find_packages

install_requires = [
    # --- STATE & VALIDATION ---
    "pydantic>=2.0.0",

    # --- NETWORK ---
    "httpx>=0.27.0",      # Async REST client for the seller API
    "PyJWT>=2.8.0",       # Token introspection for the session identity

    # --- STORAGE ---
    "duckdb>=0.10.0",     # Durable key-value documents for persisted stores

    # --- CONFIG & CONSOLE ---
    "python-dotenv>=1.0.0",
    "pyyaml>=6.0.0",
    "rich>=13.0.0",
]

extras_require = {
    # --- TESTS---
    "test": [
        "pytest-asyncio==1.3.0",
        "pytest",
    ],
}

setup(
    name="bookstall",
    version="0.1.0",
    description="Bookstall seller client: session and paginated store core",
    packages=find_packages(include=["bookstall", "bookstall.*"]),
    include_package_data=True,
    package_data={"bookstall.shared.config": ["settings/*.yaml"]},
    install_requires=install_requires,
    extras_require=extras_require,
    entry_points={
        "console_scripts": [
            "bookstall-sync=bookstall.seller.main:main",
        ],
    },
    python_requires=">=3.11",
)
