"""P25 gateway, reflector and parrot for linking digital voice repeaters over UDP."""

__version__ = "0.1.0"