"""DevOpsMate: provision a Civo instance and install a CI toolchain on it."""
