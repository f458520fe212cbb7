from typing import Optional
from django.conf import settings
from requests import PreparedRequest
from requests.auth import AuthBase


class CookieJWTAuth(AuthBase):
    """Sends the JWT access token the way the backend expects it: as the HttpOnly access cookie, mirrored into 'Authorization: Bearer ...'"""

    def __init__(self, token: str, cookie_name: Optional[str] = None):
        self.token = token
        self.cookie_name = cookie_name or getattr(settings, 'JWT_ACCESS_COOKIE_NAME', 'access_token')

    def __call__(self, request: PreparedRequest) -> PreparedRequest:
        cookie = f'{self.cookie_name}={self.token}'
        existing = request.headers.get('Cookie')
        if not existing:
            request.headers['Cookie'] = cookie
        elif f'{self.cookie_name}=' not in existing:
            request.headers['Cookie'] = f'{existing}; {cookie}'
        if 'Authorization' not in request.headers:
            request.headers['Authorization'] = f'Bearer {self.token}'
        return request

