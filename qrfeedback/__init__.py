"""QR feedback backend with Razorpay subscription billing."""

__version__ = "1.0.0"
