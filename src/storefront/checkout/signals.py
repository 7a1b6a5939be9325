"""Custom signals for the checkout app.

Signals:
    order_placed: Sent after a checkout transaction commits.
        Sender: The ``Order`` class.
        Kwargs:
            order: The ``Order`` instance that was placed.
            payment: The settled ``Payment`` recorded for it.
"""

from django.dispatch import Signal

order_placed = Signal()
