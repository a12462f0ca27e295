from .user import User
from .block import Block
from .user_block import UserBlock
from .qr_code import QRCode
from .scan_record import ScanRecord
from .question import Question
from .submission import Submission

__all__ = [
    "User",
    "Block",
    "UserBlock",
    "QRCode",
    "ScanRecord",
    "Question",
    "Submission",
]
