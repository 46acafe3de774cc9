from flask import Blueprint, request, jsonify, current_app
import re
import datetime
import logging
from jwt import PyJWTError
from flask_jwt_extended import (
    create_access_token,
    create_refresh_token,
    current_user,
    decode_token,
    get_jwt,
    get_jwt_identity,
    jwt_required,
)
from flask_jwt_extended.exceptions import JWTExtendedException
from ticket_resale.models import User
from ticket_resale.extensions import db, BLOCKLIST
from ticket_resale.services import email_service
from ticket_resale.services.common import parse_uuid

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__)

EMAIL_REGEX = r'^[a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+\.[a-zA-Z0-9-.]+$'
EMAIL_VERIFICATION_PURPOSE = 'email_verification'


def create_email_verification_token(user):
    return create_access_token(
        identity=str(user.user_id),
        additional_claims={'purpose': EMAIL_VERIFICATION_PURPOSE},
        expires_delta=datetime.timedelta(hours=24),
    )


def send_verification_email(user):
    token = create_email_verification_token(user)
    url = f"{current_app.config['SITE_URL'].rstrip('/')}/verify-email?token={token}"
    email_service.send_email(
        user.email,
        template='verification',
        template_data={'name': user.full_name, 'verificationUrl': url},
    )


@auth_bp.route('/register', methods=['POST'])
def register():
    """
    Register a new user
    ---
    tags:
      - Auth
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - email
            - password
          properties:
            email:
              type: string
            password:
              type: string
            full_name:
              type: string
            phone:
              type: string
    responses:
      201:
        description: User registered, verification email sent
      400:
        description: Invalid input
      409:
        description: Email already exists
    """
    data = request.get_json(silent=True)
    if not data or not data.get('email') or not data.get('password'):
        return jsonify({'error': 'Missing email or password'}), 400

    if not re.match(EMAIL_REGEX, data['email']):
        return jsonify({'error': 'Invalid email format'}), 400

    if len(data['password']) < 8:
        return jsonify({'error': 'Password must be at least 8 characters'}), 400

    if User.query.filter_by(email=data['email']).first():
        return jsonify({'error': 'Email already exists'}), 409

    new_user = User(
        email=data['email'],
        full_name=data.get('full_name'),
        phone=data.get('phone')
    )
    new_user.set_password(data['password'])

    try:
        db.session.add(new_user)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error("Registration failed for %s: %s", data['email'], e)
        return jsonify({'error': 'Database error'}), 500

    send_verification_email(new_user)

    return jsonify({'message': 'User registered successfully', 'user_id': str(new_user.user_id)}), 201


@auth_bp.route('/verify-email', methods=['POST'])
def verify_email():
    """
    Confirm an email address with the token from the verification email
    ---
    tags:
      - Auth
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - token
          properties:
            token:
              type: string
    responses:
      200:
        description: Email verified
      400:
        description: Invalid or expired token
    """
    data = request.get_json(silent=True) or {}
    token = data.get('token')
    if not token:
        return jsonify({'error': 'Missing token'}), 400

    try:
        claims = decode_token(token)
    except (PyJWTError, JWTExtendedException):
        return jsonify({'error': 'Invalid or expired token'}), 400

    if claims.get('purpose') != EMAIL_VERIFICATION_PURPOSE:
        return jsonify({'error': 'Invalid or expired token'}), 400

    user = db.session.get(User, parse_uuid(claims['sub'], 'token'))
    if not user:
        return jsonify({'error': 'Invalid or expired token'}), 400

    user.email_verified = True
    db.session.commit()
    return jsonify({'message': 'Email verified successfully'}), 200


@auth_bp.route('/resend-verification', methods=['POST'])
@jwt_required()
def resend_verification():
    """
    Send the verification email again
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: Email sent
      409:
        description: Already verified
    """
    if current_user.email_verified:
        return jsonify({'error': 'Email already verified'}), 409
    send_verification_email(current_user)
    return jsonify({'message': 'Verification email sent'}), 200


@auth_bp.route('/login', methods=['POST'])
def login():
    """
    Authenticate user and return tokens
    ---
    tags:
      - Auth
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - email
            - password
          properties:
            email:
              type: string
            password:
              type: string
    responses:
      200:
        description: Login successful
      401:
        description: Invalid credentials
    """
    data = request.get_json(silent=True)
    if not data or not data.get('email') or not data.get('password'):
        return jsonify({'error': 'Missing email or password'}), 400

    user = User.query.filter_by(email=data['email']).first()

    if user and user.check_password(data['password']):
        access_token = create_access_token(identity=str(user.user_id), expires_delta=datetime.timedelta(minutes=15))
        refresh_token = create_refresh_token(identity=str(user.user_id), expires_delta=datetime.timedelta(days=7))

        return jsonify({
            'message': 'Login successful',
            'access_token': access_token,
            'refresh_token': refresh_token,
            'user': user.to_dict()
        }), 200

    return jsonify({'error': 'Invalid email or password'}), 401


@auth_bp.route('/refresh', methods=['POST'])
@jwt_required(refresh=True)
def refresh():
    """
    Refresh access token
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: New access token
      401:
        description: Invalid refresh token
    """
    current_user_id = get_jwt_identity()
    new_access_token = create_access_token(identity=current_user_id, expires_delta=datetime.timedelta(minutes=15))
    return jsonify({'access_token': new_access_token}), 200


@auth_bp.route('/logout', methods=['POST'])
@jwt_required()
def logout():
    """
    Logout user (Revoke token)
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: Logout successful
    """
    BLOCKLIST.add(get_jwt()['jti'])
    return jsonify({'message': 'Logout successful'}), 200


@auth_bp.route('/me', methods=['GET'])
@jwt_required()
def me():
    """
    Current user's profile
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: User profile
    """
    return jsonify(current_user.to_dict()), 200
