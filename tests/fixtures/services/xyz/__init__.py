from .helpers import copy_abc


def setup(hjkService):
    return copy_abc(hjkService)
