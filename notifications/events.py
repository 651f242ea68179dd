from django.db import models


class EventType(models.TextChoices):
    """Named events the rental core emits for the notification collaborator."""

    CONTRACT_SENT = 'ContractSent', 'Contract Sent'
    CONTRACT_ACTIVATED = 'ContractActivated', 'Contract Activated'
    DOCUMENT_APPROVED = 'DocumentApproved', 'Document Approved'
    DOCUMENT_REJECTED = 'DocumentRejected', 'Document Rejected'
    VERIFICATION_FINALIZED = 'VerificationFinalized', 'Verification Finalized'
    PAYMENT_DUE_SOON = 'PaymentDueSoon', 'Payment Due Soon'
    PAYMENT_OVERDUE = 'PaymentOverdue', 'Payment Overdue'
