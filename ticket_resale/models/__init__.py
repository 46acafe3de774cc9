from ticket_resale.models.user import User
from ticket_resale.models.ticket import Ticket
from ticket_resale.models.transaction import Transaction
from ticket_resale.models.payout import Payout
from ticket_resale.models.notification import Notification, EmailLog
from ticket_resale.models.kyc import KycSubmission

__all__ = ['User', 'Ticket', 'Transaction', 'Payout', 'Notification', 'EmailLog', 'KycSubmission']
