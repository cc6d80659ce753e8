from setuptools import setup, find_packages

setup(
    name="paper-rebalancer",
    version="1.0.0",
    author="Paper Rebalancer Team",
    description="Portfolio valuation and threshold rebalancing engine with paper trade execution",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    package_data={
        "paper_rebalancer": ["py.typed"],
    },
    install_requires=[
        "pydantic==2.11.7",
        "aiohttp==3.12.15",
        "PyYAML==6.0.2",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
        ],
    },
    python_requires=">=3.11",
)
