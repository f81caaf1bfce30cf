"""
Push Service
============
Web Push delivery for notifications created on the PUSH channel.

Subscriptions are stored per browser endpoint.  An endpoint the push service
reports as gone (404/410) is deleted; any other failure is logged.  Nothing
here raises into the caller: a push that cannot be delivered never undoes the
notification that triggered it.
"""
import json

from flask import current_app
from pywebpush import WebPushException, webpush

from extensions import db
from models.push_subscriptions import PushSubscription
from services.exceptions import ValidationError

GONE_STATUS_CODES = (404, 410)

NOTIFICATION_ICON = '/icon-192x192.png'
NOTIFICATION_BADGE = '/badge-72x72.png'


def is_valid_subscription(data):
    """``{'endpoint': str, 'keys': {'p256dh': str, 'auth': str}}``"""
    if not isinstance(data, dict):
        return False
    keys = data.get('keys')
    return (
        isinstance(data.get('endpoint'), str) and bool(data['endpoint'])
        and isinstance(keys, dict)
        and isinstance(keys.get('p256dh'), str) and bool(keys['p256dh'])
        and isinstance(keys.get('auth'), str) and bool(keys['auth'])
    )


class PushService:

    def __init__(self, config):
        self.public_key = config.get('VAPID_PUBLIC_KEY')
        self.private_key = config.get('VAPID_PRIVATE_KEY')
        email = config.get('VAPID_CLAIM_EMAIL') or ''
        self.claim_subject = email if not email or email.startswith('mailto:') else f'mailto:{email}'

    @property
    def configured(self):
        return bool(self.public_key and self.private_key and self.claim_subject)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def save_subscription(self, user_id, data, user_agent=None):
        """Register an endpoint for *user_id*; an existing endpoint is re-owned."""
        if not is_valid_subscription(data):
            raise ValidationError('Invalid push subscription',
                                  errors={'subscription': ['Expected endpoint and keys.p256dh/keys.auth']})

        subscription = PushSubscription.query.filter_by(endpoint=data['endpoint']).first()
        if subscription is None:
            subscription = PushSubscription(endpoint=data['endpoint'])
            db.session.add(subscription)
        subscription.user_id = user_id
        subscription.p256dh = data['keys']['p256dh']
        subscription.auth = data['keys']['auth']
        subscription.user_agent = (user_agent or '')[:255] or None
        db.session.commit()
        return subscription

    def remove_subscription(self, user_id, endpoint):
        deleted = PushSubscription.query.filter_by(user_id=user_id, endpoint=endpoint).delete()
        db.session.commit()
        return deleted

    def get_user_subscriptions(self, user_id):
        return PushSubscription.query.filter_by(user_id=user_id).order_by(PushSubscription.id).all()

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    def build_payload(self, notification):
        data = dict(notification.data or {})
        data.update({'notification_id': notification.id, 'type': notification.type})
        return {
            'title': notification.title,
            'body': notification.message,
            'icon': NOTIFICATION_ICON,
            'badge': NOTIFICATION_BADGE,
            'data': data,
            'actions': [
                {'action': 'view', 'title': 'View'},
                {'action': 'dismiss', 'title': 'Dismiss'},
            ],
        }

    def send_notification(self, notification):
        """Push *notification* to every endpoint its user registered.  Returns the number delivered."""
        return self._send(notification.user_id, self.build_payload(notification))

    def send_test(self, user_id):
        payload = {
            'title': 'AutoCare test notification',
            'body': 'Push notifications are working.',
            'icon': NOTIFICATION_ICON,
            'badge': NOTIFICATION_BADGE,
            'data': {'type': 'TEST'},
        }
        return self._send(user_id, payload)

    def _send(self, user_id, payload):
        if not self.configured:
            current_app.logger.debug(f"VAPID keys missing, push for user {user_id} skipped")
            return 0

        body = json.dumps(payload)
        delivered = 0
        for subscription in self.get_user_subscriptions(user_id):
            if self._push(subscription, body):
                delivered += 1
        return delivered

    def _push(self, subscription, body):
        try:
            webpush(
                subscription_info=subscription.subscription_info(),
                data=body,
                vapid_private_key=self.private_key,
                # pywebpush mutates the claims dict
                vapid_claims={'sub': self.claim_subject},
            )
            return True
        except WebPushException as ex:
            status = getattr(ex.response, 'status_code', None)
            if status in GONE_STATUS_CODES:
                current_app.logger.info(f"Push endpoint gone ({status}), removing subscription {subscription.id}")
                db.session.delete(subscription)
                db.session.commit()
            else:
                current_app.logger.warning(f"Push to subscription {subscription.id} failed: {ex}")
            return False
