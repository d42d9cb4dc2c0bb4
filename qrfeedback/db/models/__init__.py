from .user import User
from .payment import Payment
from .qr import QrImage, CustomURL, LogoImage

__all__ = ["User", "Payment", "QrImage", "CustomURL", "LogoImage"]
