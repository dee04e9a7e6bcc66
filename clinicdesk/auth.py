import base64
import json
import logging
import time
from typing import Optional

import httpx
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.x509 import load_pem_x509_certificate
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .config import FIREBASE_PROJECT_ID
from .database import get_db
from .models import ROLE_ADMIN, ROLE_DOCTOR, ROLE_RANK, ROLE_RECEPTION, ClinicMembership, User
from .plan_limits import get_clinic_access_snapshot, snapshot_has_access

logger = logging.getLogger(__name__)

security = HTTPBearer()

GOOGLE_CERTS_URL = (
    "https://www.googleapis.com/robot/v1/metadata/x509/securetoken@system.gserviceaccount.com"
)

# Cache for Google's public keys
_cached_keys = None


async def get_google_public_keys(force_refresh: bool = False) -> Optional[dict]:
    """Fetch Google's public keys for Firebase token verification"""
    global _cached_keys
    if _cached_keys and not force_refresh:
        return _cached_keys

    try:
        async with httpx.AsyncClient(timeout=10) as client:
            response = await client.get(GOOGLE_CERTS_URL)
        if response.status_code == 200:
            _cached_keys = response.json()
            logger.info(f"✅ Fetched {len(_cached_keys)} Google public keys")
            return _cached_keys
        logger.error(f"❌ Failed to fetch Google public keys: HTTP {response.status_code}")
    except httpx.HTTPError as e:
        logger.error(f"❌ Error fetching Google public keys: {str(e)}")
    return None


def _b64url_decode(segment: str) -> bytes:
    return base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))


def _check_claims(claims: dict) -> None:
    if claims.get("aud") != FIREBASE_PROJECT_ID:
        logger.error("❌ Token audience mismatch")
        raise HTTPException(status_code=401, detail="Invalid token audience")

    if claims.get("iss") != f"https://securetoken.google.com/{FIREBASE_PROJECT_ID}":
        logger.error("❌ Token issuer mismatch")
        raise HTTPException(status_code=401, detail="Invalid token issuer")

    now = time.time()
    if claims.get("exp", 0) < now:
        raise HTTPException(
            status_code=401,
            detail="Token has expired. Please refresh your session.",
            headers={"X-Token-Expired": "true"},
        )

    # Allow 60 seconds clock skew
    if claims.get("iat", 0) > now + 60:
        logger.warning("⚠️ Token issued in the future")
        raise HTTPException(status_code=401, detail="Invalid token")

    if "auth_time" not in claims:
        raise HTTPException(status_code=401, detail="Invalid token claims")


async def verify_firebase_token(token: str) -> dict:
    """
    Verify a Firebase ID token: RS256 signature against Google's
    certificates, then audience, issuer and lifetime claims.
    """
    if not FIREBASE_PROJECT_ID:
        logger.error("❌ FIREBASE_PROJECT_ID not configured")
        raise HTTPException(status_code=500, detail="Firebase not configured")

    parts = token.split(".")
    if len(parts) != 3:
        raise HTTPException(status_code=401, detail="Invalid token format")
    header_b64, payload_b64, signature_b64 = parts

    try:
        header = json.loads(_b64url_decode(header_b64))
        claims = json.loads(_b64url_decode(payload_b64))
        signature = _b64url_decode(signature_b64)
    except (ValueError, TypeError) as e:
        logger.error(f"❌ Failed to decode token: {str(e)}")
        raise HTTPException(status_code=401, detail="Invalid token encoding") from e

    if header.get("alg") != "RS256":
        logger.error(f"❌ Invalid token algorithm: {header.get('alg')}")
        raise HTTPException(status_code=401, detail="Invalid token algorithm")

    kid = header.get("kid")
    if not kid:
        raise HTTPException(status_code=401, detail="Token missing key ID")

    public_keys = await get_google_public_keys()
    if not public_keys or kid not in public_keys:
        # Google rotates keys; refetch once before giving up
        logger.warning(f"⚠️ Key ID {kid} not in cached keys, refreshing")
        public_keys = await get_google_public_keys(force_refresh=True)
        if not public_keys or kid not in public_keys:
            raise HTTPException(status_code=401, detail="Unable to verify token signature")

    try:
        cert = load_pem_x509_certificate(public_keys[kid].encode())
        cert.public_key().verify(
            signature,
            f"{header_b64}.{payload_b64}".encode(),
            padding.PKCS1v15(),
            hashes.SHA256(),
        )
    except Exception as e:
        logger.error(f"❌ Token signature verification failed: {str(e)}")
        raise HTTPException(status_code=401, detail="Invalid token signature") from e

    _check_claims(claims)
    return claims


def _find_or_create_user(db: Session, firebase_uid: str, email: Optional[str], name: str) -> User:
    user = db.query(User).filter(User.firebase_uid == firebase_uid).first()
    if user:
        return user

    if not email:
        # Accounts are keyed by email; phone-only sign-ins cannot be linked to a clinic
        logger.warning(f"⚠️ Firebase UID {firebase_uid} has no email claim")
        raise HTTPException(status_code=401, detail="An email address is required to sign in")

    # Members added by an admin exist before their first sign-in; link them by email
    existing_user = db.query(User).filter(User.email == email.lower()).first()
    if existing_user:
        logger.info(f"🔄 Linking {email} to Firebase UID {firebase_uid}")
        existing_user.firebase_uid = firebase_uid
        if name and not existing_user.full_name:
            existing_user.full_name = name
        db.commit()
        db.refresh(existing_user)
        return existing_user

    logger.info(f"🆕 Creating new user: {email}")
    user = User(firebase_uid=firebase_uid, email=email.lower(), full_name=name)
    db.add(user)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        # Another request registered the same email between check and insert
        logger.error(f"❌ Email {email} was taken by another account (race condition)")
        raise HTTPException(
            status_code=409,
            detail="This email is already registered. Please sign in with your existing account.",
        ) from e
    db.refresh(user)
    return user


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Get current user from Firebase token"""
    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )

    claims = await verify_firebase_token(credentials.credentials)

    # Firebase ID tokens use 'sub' as the user ID claim
    firebase_uid = claims.get("sub") or claims.get("user_id")
    if not firebase_uid:
        logger.error(f"❌ Token missing user ID claim. Available claims: {list(claims.keys())}")
        raise HTTPException(status_code=401, detail="Invalid token claims")

    user = _find_or_create_user(db, firebase_uid, claims.get("email"), claims.get("name", ""))
    logger.debug(f"✅ User authenticated: {user.email}")
    return user


def has_clinic_access(
    db: Session, user_id: int, clinic_id: str, required_role: str = ROLE_RECEPTION
) -> Optional[ClinicMembership]:
    """Return the membership when its role ranks at least required_role"""
    membership = (
        db.query(ClinicMembership)
        .filter(ClinicMembership.user_id == user_id, ClinicMembership.clinic_id == clinic_id)
        .first()
    )
    if not membership:
        return None
    if ROLE_RANK.get(membership.role, 0) < ROLE_RANK[required_role]:
        return None
    return membership


def require_clinic_role(required_role: str):
    """
    Dependency factory guarding /clinics/{clinic_id}/... routes.

    Example usage:
        @router.post("")
        async def create_doctor(membership=Depends(require_clinic_role(ROLE_ADMIN))):
            ...
    """

    async def clinic_role_dependency(
        clinic_id: str,
        user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
    ) -> ClinicMembership:
        membership = has_clinic_access(db, user.id, clinic_id, required_role)
        if not membership:
            logger.warning(
                f"⚠️ User {user.id} denied {required_role} access to clinic {clinic_id}"
            )
            raise HTTPException(status_code=403, detail="Forbidden")
        return membership

    return clinic_role_dependency


get_clinic_membership = require_clinic_role(ROLE_RECEPTION)
require_doctor = require_clinic_role(ROLE_DOCTOR)
require_admin = require_clinic_role(ROLE_ADMIN)


async def require_active_subscription(
    membership: ClinicMembership = Depends(get_clinic_membership),
    db: Session = Depends(get_db),
) -> ClinicMembership:
    """
    Gate paid features on the clinic's subscription.
    An expired trial or cancelled plan gets 403 with X-Subscription-Required.
    """
    snapshot = get_clinic_access_snapshot(membership.clinic_id, db)
    if not snapshot_has_access(snapshot):
        logger.warning(
            f"⚠️ Clinic {membership.clinic_id} used a paid feature with status {snapshot.get('status')}"
        )
        raise HTTPException(
            status_code=403,
            detail="An active subscription is required. Please choose a plan to continue.",
            headers={"X-Subscription-Required": "true"},
        )
    return membership
