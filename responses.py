from flask import jsonify


def respond(status_code, message, data=None, **extra):
    """Wrap a payload in the ``{statusCode, message, data}`` envelope."""
    body = {"statusCode": status_code, "message": message}
    if data is not None:
        body["data"] = data
    body.update(extra)
    response = jsonify(body)
    response.status_code = status_code
    return response
