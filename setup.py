from setuptools import find_packages, setup

setup(
    name="rpc_testing",
    version="1.0.0",
    description="pytest helpers to test gRPC services and clients without a transport",
    packages=find_packages(include=["rpc_testing*"]),
    python_requires=">=3.8",
    install_requires=["grpcio", "protobuf>=4.22", "inflection", "pytest>=7"],
    entry_points={"pytest11": ["rpc_testing = rpc_testing.plugin"]},
)
