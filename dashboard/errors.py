class ClientError(Exception):
    """Base class for back-office API client failures."""


class NetworkError(ClientError):
    pass


class ApiResponseError(ClientError):
    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


class MalformedResponseError(ClientError):
    pass
