def copy_abc(service):
    return {"abc": service["abc"]}
