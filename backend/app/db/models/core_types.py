import enum


class ChangeType(str, enum.Enum):
    increase = "increase"
    decrease = "decrease"
    restock = "restock"
    adjustment = "adjustment"
    sale = "sale"
    return_ = "return"
