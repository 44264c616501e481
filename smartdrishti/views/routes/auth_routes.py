from flask import Blueprint, jsonify
from flask_jwt_extended import jwt_required, current_user, get_current_user

from smartdrishti.services.auth_service import AuthService
from smartdrishti.views.forms import RegistrationForm, LoginForm, ProfileForm, json_body

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')


@auth_bp.route('/register', methods=['POST'])
@jwt_required(optional=True)
def register():
    form = RegistrationForm.validated(json_body())
    user, token = AuthService.register(
        form.username.data.strip(),
        form.email.data.strip(),
        form.password.data,
        form.role.data,
        granted_by=get_current_user(),
    )
    return jsonify({'message': 'User registered successfully', 'user': user.to_dict(), 'token': token}), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    form = LoginForm.validated(json_body())
    user, token = AuthService.login(form.email.data.strip(), form.password.data)
    return jsonify({'message': 'Login successful', 'user': user.to_dict(), 'token': token})


@auth_bp.route('/profile', methods=['GET'])
@jwt_required()
def get_profile():
    return jsonify({'user': AuthService.profile(current_user.id)})


@auth_bp.route('/profile', methods=['PUT'])
@jwt_required()
def update_profile():
    form = ProfileForm.validated(json_body())
    user = AuthService.update_profile(current_user.id, form.username.data.strip(), form.email.data.strip())
    return jsonify({'message': 'Profile updated successfully', 'user': user})
