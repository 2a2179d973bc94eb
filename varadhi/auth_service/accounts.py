"""
Account registration and login against the app_users table.
"""

import logging
from typing import Optional

import psycopg2.errors
from argon2 import PasswordHasher
from argon2.exceptions import HashingError, InvalidHashError, VerificationError

from varadhi.auth_service.schemas import LoginRequest, LoginResponse, MessageResponse, RegisterRequest
from varadhi.common.errors import ConflictError, StoreError, UnauthorizedError
from varadhi.database.gateway import QueryError, QueryGateway

# Fixed cost parameters; never taken from the request.
HASH_TIME_COST = 3
HASH_MEMORY_COST = 65536  # KiB
HASH_PARALLELISM = 4

ph = PasswordHasher(
    time_cost=HASH_TIME_COST,
    memory_cost=HASH_MEMORY_COST,
    parallelism=HASH_PARALLELISM,
)

COUNT_EXISTING_SQL = """
    SELECT COUNT(*) AS "COUNT"
    FROM app_users
    WHERE username = %(username)s OR email = %(email)s;
"""

INSERT_USER_SQL = """
    INSERT INTO app_users (username, email, password_hash, mobile_number)
    VALUES (%(username)s, %(email)s, %(password_hash)s, %(mobile_number)s);
"""

GET_USER_SQL = """
    SELECT id AS "ID", username AS "USERNAME", password_hash AS "PASSWORD_HASH"
    FROM app_users
    WHERE username = %(username)s;
"""

INVALID_CREDENTIALS = "Invalid username or password."
DUPLICATE_ACCOUNT = "Username or email already exists. Please choose another one."


class AccountService:
    """
    Register and log in accounts.

    Args:
        gateway (QueryGateway): Executes the account statements.
        hasher (PasswordHasher, optional): Defaults to the module-level `ph`.
    """

    def __init__(self, gateway: QueryGateway, hasher: Optional[PasswordHasher] = None) -> None:
        self.gateway = gateway
        self.hasher = hasher or ph

    def register(self, req: RegisterRequest) -> MessageResponse:
        """
        Create an account.

        The username and email share one namespace: registration fails if
        either is already present on any row.

        Raises:
            ConflictError: Username or email already exists.
            StoreError: Hashing or database failure.
        """
        try:
            password_hash = self.hasher.hash(req.password)
        except HashingError as e:
            raise StoreError("Failed to register user.", details="Password hashing failed") from e

        try:
            rows = self.gateway.execute(COUNT_EXISTING_SQL, {"username": req.username, "email": req.email})
            if rows[0]["COUNT"] > 0:
                raise ConflictError(DUPLICATE_ACCOUNT)

            self.gateway.execute(
                INSERT_USER_SQL,
                {
                    "username": req.username,
                    "email": req.email,
                    "password_hash": password_hash,
                    "mobile_number": req.mobile_number or None,
                },
                fetch=False,
                commit=True,
            )
        except QueryError as e:
            # A concurrent registration can pass the count and still hit the UNIQUE constraint.
            if isinstance(e.cause, psycopg2.errors.UniqueViolation):
                raise ConflictError(DUPLICATE_ACCOUNT) from e
            logging.error(f"[Auth] Error during user registration: {e} Params: {e.parameters}")
            raise StoreError("Failed to register user.", details=str(e.cause)) from e

        logging.info(f"[Auth] Registered user {req.username}")
        return MessageResponse(message="User registered successfully!")

    def login(self, req: LoginRequest) -> LoginResponse:
        """
        Check a username/password pair.

        No session or token is issued; the caller gets the stored username
        and numeric id back.

        Raises:
            UnauthorizedError: Unknown username or wrong password.
            StoreError: Database failure.
        """
        try:
            rows = self.gateway.execute(GET_USER_SQL, {"username": req.username})
        except QueryError as e:
            logging.error(f"[Auth] Error during user login: {e}")
            raise StoreError("Failed to log in.", details=str(e.cause)) from e

        if not rows:
            raise UnauthorizedError(INVALID_CREDENTIALS)

        user = rows[0]
        try:
            self.hasher.verify(user["PASSWORD_HASH"], req.password)
        except (VerificationError, InvalidHashError) as e:
            raise UnauthorizedError(INVALID_CREDENTIALS) from e

        return LoginResponse(message="Login successful!", username=user["USERNAME"], user_id=user["ID"])
