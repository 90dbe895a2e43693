class ApiError(Exception):
    """Error carrying the HTTP status code it should be answered with."""

    def __init__(self, message, status_code=400, details=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details

    def to_dict(self):
        data = {'error': self.message}
        if self.details is not None:
            data['details'] = self.details
        return data

    def __repr__(self):
        return f'<ApiError {self.status_code} {self.message}>'


def not_found(message):
    return ApiError(message, 404)


def forbidden(message='Acesso negado'):
    return ApiError(message, 403)


def conflict(message):
    return ApiError(message, 409)
