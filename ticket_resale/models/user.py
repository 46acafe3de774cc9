import uuid
import bcrypt
from ticket_resale.extensions import db

KYC_STATUSES = ('pending', 'verified', 'rejected')
ROLES = ('user', 'admin')


class User(db.Model):
    __tablename__ = 'users'

    user_id = db.Column(db.Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = db.Column(db.String(255), unique=True, nullable=False)
    full_name = db.Column(db.String(255))
    phone = db.Column(db.String(20))
    password_hash = db.Column(db.Text, nullable=False)
    email_verified = db.Column(db.Boolean, nullable=False, default=False)
    kyc_status = db.Column(db.Enum(*KYC_STATUSES, name='kyc_status'), nullable=False, default='pending')
    role = db.Column(db.Enum(*ROLES, name='user_role'), nullable=False, default='user')
    # Only ever changed with `col = col + 1` statements
    successful_purchases = db.Column(db.Integer, nullable=False, default=0)
    successful_sales = db.Column(db.Integer, nullable=False, default=0)
    total_transactions = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, server_default=db.func.now())
    updated_at = db.Column(db.DateTime, server_default=db.func.now(), onupdate=db.func.now())

    def set_password(self, password):
        self.password_hash = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')

    def check_password(self, password):
        return bcrypt.checkpw(password.encode('utf-8'), self.password_hash.encode('utf-8'))

    @property
    def is_admin(self):
        return self.role == 'admin'

    def to_dict(self):
        return {
            'user_id': str(self.user_id),
            'email': self.email,
            'full_name': self.full_name,
            'phone': self.phone,
            'email_verified': self.email_verified,
            'kyc_status': self.kyc_status,
            'role': self.role,
            'successful_purchases': self.successful_purchases or 0,
            'successful_sales': self.successful_sales or 0,
            'total_transactions': self.total_transactions or 0,
        }
