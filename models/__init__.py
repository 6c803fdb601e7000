from .db import db
from .user import User
from .activity_log import ActivityLog
from .blocked_ip import BlockedIp
from .lease import Lease
from .rental_agreement import RentalAgreement, AgreementStatus
