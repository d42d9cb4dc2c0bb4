from .feature_gate import FeatureGate
from .subscriptions import SubscriptionService
from .webhook_events import WebhookDispatcher, parse_event, verify_signature

__all__ = ["FeatureGate", "SubscriptionService", "WebhookDispatcher", "parse_event", "verify_signature"]
