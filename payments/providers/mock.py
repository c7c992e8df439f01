"""
Mock gateway used for CHAPA, TELEBIRR and SANTIM_PAY until real credentials
are configured. Initiation usually returns PENDING; verification always
reports PAID.
"""
import random
import time
import uuid

from . import InitiateResult, VerifyResult


class MockPaymentProvider:

    def __init__(self, initiate_delay=0.3, verify_delay=0.2, failure_rate=0.05, rng=None):
        self.initiate_delay = initiate_delay
        self.verify_delay = verify_delay
        self.failure_rate = failure_rate
        self.rng = rng or random.Random()

    def initiate(self, order_id, amount, return_url=None, cancel_url=None):
        if self.initiate_delay:
            time.sleep(self.initiate_delay)
        transaction_id = f"MOCK-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"
        failed = self.rng.random() < self.failure_rate
        return InitiateResult(
            transaction_id=transaction_id,
            status='FAILED' if failed else 'PENDING',
        )

    def verify(self, transaction_id, raw_callback=None):
        if self.verify_delay:
            time.sleep(self.verify_delay)
        return VerifyResult(success=True, status='PAID')
