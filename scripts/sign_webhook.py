"""HMAC signing helper for simulating Shopify GDPR webhooks.

Reads a body from stdin and outputs its base64-encoded HMAC-SHA256 signature
using SHOPIFY_CLIENT_SECRET from the environment (or .env file).

Usage:
    echo -n '{"shop_id":1}' | python -m scripts.sign_webhook

    # Full curl example:
    BODY='{"shop_id":1,"shop_domain":"test-store.myshopify.com","customer":{"id":42}}'
    HMAC=$(echo -n "$BODY" | python -m scripts.sign_webhook)
    curl -i -X POST http://localhost:3000/webhooks/customers/redact \\
      -H "Content-Type: application/json" \\
      -H "X-Shopify-Hmac-Sha256: $HMAC" \\
      -H "X-Shopify-Shop-Domain: test-store.myshopify.com" \\
      -H "X-Shopify-Topic: customers/redact" \\
      -d "$BODY"
"""

import sys

from storeforge.core.config import settings
from storeforge.integrations.shopify.webhooks import compute_webhook_signature


def main() -> None:
    secret = settings.shopify_client_secret.get_secret_value()
    if not secret:
        print("ERROR: SHOPIFY_CLIENT_SECRET is not set in .env", file=sys.stderr)
        sys.exit(1)

    body = sys.stdin.buffer.read()
    if not body:
        print("ERROR: No input received on stdin", file=sys.stderr)
        sys.exit(1)

    print(compute_webhook_signature(body, secret), end="")


if __name__ == "__main__":
    main()
