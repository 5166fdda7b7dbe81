def setup():
    return {"abc": "abc"}
