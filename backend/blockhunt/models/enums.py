from sqlalchemy import BigInteger, Enum, Integer

# Enum columns are stored as constrained VARCHARs so the same schema runs on
# PostgreSQL and on the SQLite database used by the test-suite.

role_enum = Enum("user", "admin", name="role_enum", native_enum=False, length=20)
block_category_enum = Enum(
    "Logic",
    "Loops",
    "Math",
    "Text",
    "Lists",
    "Variables",
    "Functions",
    name="block_category_enum",
    native_enum=False,
    length=20,
)
submission_status_enum = Enum(
    "pending",
    "graded",
    "approved",
    "rejected",
    name="submission_status_enum",
    native_enum=False,
    length=20,
)

BLOCK_CATEGORIES = tuple(block_category_enum.enums)
SUBMISSION_STATUSES = tuple(submission_status_enum.enums)

# SQLite only autoincrements INTEGER PRIMARY KEY columns
BigIntPK = BigInteger().with_variant(Integer(), "sqlite")
