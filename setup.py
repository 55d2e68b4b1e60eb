import setuptools

with open("requirements.txt", "r") as f:
    install_requires = f.read().split()

setuptools.setup(
    name="odtn_south_fujitsu",
    version="0.1.0",
    install_requires=install_requires,
    description="OpenConfig terminal device driver for Fujitsu T600",
    python_requires=">=3.8",
    entry_points={
        "console_scripts": ["odtn-fujitsu = odtn.south.fujitsu.main:main"],
    },
    packages=setuptools.find_namespace_packages(include=["odtn.*"]),
    zip_safe=False,
)
