from enum import Enum


class PromotionAction(str, Enum):
    PROMOTE = "PROMOTE"
    RETAIN = "RETAIN"


class StudentStatus(str, Enum):
    ACTIVE = "ACTIVE"
    LEFT = "LEFT"
    GRADUATED = "GRADUATED"
