# ==============================================================================
# APLICACIÓN FLASK - API JSON del negocio
# ==============================================================================
# Las rutas solo orquestan: request → servicio → respuesta JSON.
# Toda la lógica vive en services/; los errores del negocio
# (errors.BusinessError) se convierten en {"ok": False, "error": "..."}.
#
# El usuario autenticado se guarda en la sesión de Flask y se convierte en
# un Identity que se pasa explícitamente a cada servicio.
# ==============================================================================

import os
import uuid
from functools import wraps

from flask import Blueprint, Flask, current_app, request, session
from werkzeug.exceptions import HTTPException

from app_negocio.app_container import AppContainer, get_container
from app_negocio.errors import BusinessError, InsufficientStock, NotAuthenticated
from app_negocio.models.entities import Identity
from app_negocio.performance_logger import init_profiling

# ═══════════════════════════════════════════════════════════════════════════
# CONFIGURACIÓN
# ═══════════════════════════════════════════════════════════════════════════

# PRODUCTION_MODE: export NEGOCIO_PRODUCTION=1
PRODUCTION_MODE = os.environ.get('NEGOCIO_PRODUCTION', '0') == '1'

# SECRET_KEY: En producción DEBE definirse via variable de entorno
# Comando: export NEGOCIO_SECRET_KEY="tu_clave_secreta_muy_larga_y_aleatoria"
_DEFAULT_SECRET = "app_negocio_dev_secret_key_change_in_production"

# Directorio de datos (negocio.json, audit.json)
DEFAULT_DATA_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'data')

api = Blueprint('api', __name__, url_prefix='/api')


def _container() -> AppContainer:
    return current_app.extensions['negocio']


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


# ═══════════════════════════════════════════════════════════════════════════
# SESIÓN, AUTENTICACIÓN Y CSRF
# ═══════════════════════════════════════════════════════════════════════════

def current_identity():
    """Identity del usuario en sesión, o None."""
    user_id = session.get('user_id')
    if not user_id:
        return None
    return Identity(id=user_id, email=session.get('email'))


def login_required(f):
    @wraps(f)
    def wrapper(*args, **kwargs):
        if current_identity() is None:
            return {"ok": False, "error": NotAuthenticated().message}, 401
        return f(*args, **kwargs)
    return wrapper


def generate_csrf_token():
    if 'csrf_token' not in session:
        session['csrf_token'] = uuid.uuid4().hex
    return session['csrf_token']


def verify_csrf(f):
    @wraps(f)
    def wrapper(*args, **kwargs):
        if request.method in ('POST', 'PUT', 'PATCH', 'DELETE'):
            token = session.get('csrf_token')
            sent_token = (
                request.headers.get('X-CSRF-Token') or
                request.headers.get('X-CSRFToken')  # Common JS naming
            )
            if not sent_token and request.is_json:
                sent_token = _json_body().get('csrf_token')

            if not token or not sent_token or token != sent_token:
                return {"ok": False, "error": "CSRF token inválido"}, 403
        return f(*args, **kwargs)
    return wrapper


# ═══════════════════════════════════════════════════════════════════════════
# AUTENTICACIÓN
# ═══════════════════════════════════════════════════════════════════════════

@api.route('/session', methods=['GET'])
def session_info():
    identity = current_identity()
    return {
        "ok": True,
        "authenticated": identity is not None,
        "user": {"id": identity.id, "email": identity.email} if identity else None,
        "csrf_token": generate_csrf_token(),
    }


@api.route('/register', methods=['POST'])
@verify_csrf
def register():
    data = _json_body()
    profile = _container().user_service.register(
        data.get('email'), data.get('password'), data.get('full_name', '')
    )
    return {"ok": True, "user": profile}, 201


@api.route('/login', methods=['POST'])
@verify_csrf
def login():
    data = _json_body()
    identity = _container().user_service.authenticate(data.get('email'), data.get('password'))

    session.clear()
    session['user_id'] = identity.id
    session['email'] = identity.email
    session.permanent = True  # Usa PERMANENT_SESSION_LIFETIME
    return {
        "ok": True,
        "user": {"id": identity.id, "email": identity.email},
        "csrf_token": generate_csrf_token(),
    }


@api.route('/logout', methods=['POST'])
@login_required
@verify_csrf
def logout():
    _container().audit_service.log_user_logout(session.get('email') or session.get('user_id'))
    session.clear()
    return {"ok": True}


# ═══════════════════════════════════════════════════════════════════════════
# INVENTARIO
# ═══════════════════════════════════════════════════════════════════════════

@api.route('/products', methods=['GET'])
@login_required
def list_products():
    service = _container().inventory_service
    if request.args.get('active') == '1':
        products = service.list_active_products()
    else:
        products = service.list_products()
    return {"ok": True, "products": products}


@api.route('/products', methods=['POST'])
@login_required
@verify_csrf
def create_product():
    data = _json_body()
    product = _container().inventory_service.create_product(
        data.get('name'),
        category=data.get('category', ''),
        cost=data.get('cost', 0),
        selling_price=data.get('selling_price', 0),
        stock_quantity=data.get('stock_quantity', 0),
        is_active=data.get('is_active', True),
        user=session.get('email'),
    )
    return {"ok": True, "product": product}, 201


@api.route('/products/<product_id>', methods=['PUT'])
@login_required
@verify_csrf
def update_product(product_id):
    product = _container().inventory_service.update_product(
        product_id, _json_body(), user=session.get('email')
    )
    return {"ok": True, "product": product}


# ═══════════════════════════════════════════════════════════════════════════
# CARRITO
# ═══════════════════════════════════════════════════════════════════════════

@api.route('/cart', methods=['GET'])
@login_required
def get_cart():
    return {"ok": True, "cart": _container().cart_service.get_cart()}


@api.route('/cart/add', methods=['POST'])
@login_required
@verify_csrf
def cart_add():
    data = _json_body()
    cart = _container().cart_service.add_item(
        data.get('product_id'), data.get('quantity', 1), data.get('unit_price')
    )
    return {"ok": True, "mensaje": "Producto agregado al carrito", "cart": cart}


@api.route('/cart/update', methods=['POST'])
@login_required
@verify_csrf
def cart_update():
    data = _json_body()
    cart = _container().cart_service.update_item(
        data.get('product_id'), data.get('quantity'), data.get('unit_price')
    )
    return {"ok": True, "cart": cart}


@api.route('/cart/remove', methods=['POST'])
@login_required
@verify_csrf
def cart_remove():
    cart = _container().cart_service.remove_item(_json_body().get('product_id'))
    return {"ok": True, "mensaje": "Producto eliminado del carrito", "cart": cart}


@api.route('/cart/clear', methods=['POST'])
@login_required
@verify_csrf
def cart_clear():
    return {"ok": True, "mensaje": "Carrito vaciado", "cart": _container().cart_service.clear_cart()}


@api.route('/cart/confirm', methods=['POST'])
@login_required
@verify_csrf
def cart_confirm():
    data = _json_body()
    sale = _container().cart_service.confirm(
        current_identity(),
        data.get('customer_name'),
        data.get('payment_status', 'pending'),
        due_date=data.get('due_date'),
        contact_info={'email': data.get('email'), 'phone': data.get('phone')},
        notes=data.get('notes'),
    )
    return {"ok": True, "sale": sale.to_dict(with_items=True)}, 201


# ═══════════════════════════════════════════════════════════════════════════
# VENTAS
# ═══════════════════════════════════════════════════════════════════════════

@api.route('/sales', methods=['GET'])
@login_required
def list_sales():
    return {"ok": True, "sales": _container().sales_service.list_sales()}


@api.route('/sales', methods=['POST'])
@login_required
@verify_csrf
def create_sale():
    data = _json_body()
    sale = _container().sales_service.create_sale(
        current_identity(),
        data.get('customer_name'),
        data.get('items') or [],
        payment_status=data.get('payment_status', 'pending'),
        due_date=data.get('due_date'),
        contact_info=data.get('contact_info'),
        sale_date=data.get('sale_date'),
        notes=data.get('notes'),
    )
    return {"ok": True, "sale": sale.to_dict(with_items=True)}, 201


@api.route('/sales/<sale_id>', methods=['GET'])
@login_required
def get_sale(sale_id):
    return {"ok": True, "sale": _container().sales_service.get_sale(sale_id)}


@api.route('/sales/<sale_id>', methods=['DELETE'])
@login_required
@verify_csrf
def delete_sale(sale_id):
    result = _container().sales_service.delete_sale(current_identity(), sale_id)
    return {"ok": True, "result": result}


# ═══════════════════════════════════════════════════════════════════════════
# DEUDORES
# ═══════════════════════════════════════════════════════════════════════════

@api.route('/debtors', methods=['GET'])
@login_required
def list_debtors():
    return {"ok": True, "debtors": _container().debt_service.list_open_debtors()}


@api.route('/debtors/stats', methods=['GET'])
@login_required
def debtor_stats():
    return {"ok": True, "stats": _container().debt_service.get_stats()}


@api.route('/debtors/<debtor_id>/pay', methods=['POST'])
@login_required
@verify_csrf
def pay_debtor(debtor_id):
    debtor = _container().debt_service.mark_paid(current_identity(), debtor_id)
    return {"ok": True, "debtor": debtor}


@api.route('/debtors/consistency', methods=['GET'])
@login_required
def debtors_consistency():
    issues = _container().debt_service.check_consistency(current_identity())
    return {"ok": True, "consistent": not issues, "issues": issues}


# ═══════════════════════════════════════════════════════════════════════════
# NOTAS
# ═══════════════════════════════════════════════════════════════════════════

@api.route('/notes', methods=['GET'])
@login_required
def list_notes():
    service = _container().note_service
    identity = current_identity()
    return {"ok": True, "notes": service.list_notes(identity), "stats": service.get_stats(identity)}


@api.route('/notes', methods=['POST'])
@login_required
@verify_csrf
def create_note():
    data = _json_body()
    note = _container().note_service.create_note(
        current_identity(),
        data.get('title'),
        content=data.get('content'),
        category=data.get('category'),
        is_pinned=data.get('is_pinned', False),
    )
    return {"ok": True, "note": note}, 201


@api.route('/notes/<note_id>', methods=['PUT'])
@login_required
@verify_csrf
def update_note(note_id):
    note = _container().note_service.update_note(current_identity(), note_id, _json_body())
    return {"ok": True, "note": note}


@api.route('/notes/<note_id>', methods=['DELETE'])
@login_required
@verify_csrf
def delete_note(note_id):
    _container().note_service.delete_note(current_identity(), note_id)
    return {"ok": True}


@api.route('/notes/<note_id>/pin', methods=['POST'])
@login_required
@verify_csrf
def pin_note(note_id):
    note = _container().note_service.toggle_pin(current_identity(), note_id)
    return {"ok": True, "note": note}


# ═══════════════════════════════════════════════════════════════════════════
# REPORTES
# ═══════════════════════════════════════════════════════════════════════════

@api.route('/dashboard', methods=['GET'])
@login_required
def dashboard():
    report = _container().stats_service.dashboard(
        request.args.get('range'), request.args.get('start'), request.args.get('end')
    )
    return {"ok": True, "dashboard": report}


@api.route('/analysis', methods=['GET'])
@login_required
def analysis():
    report = _container().stats_service.analysis(
        request.args.get('range'), request.args.get('start'), request.args.get('end')
    )
    return {"ok": True, "analysis": report}


# ═══════════════════════════════════════════════════════════════════════════
# ERRORES Y CABECERAS
# ═══════════════════════════════════════════════════════════════════════════

def handle_business_error(error):
    body = {"ok": False, "error": error.message}
    if isinstance(error, InsufficientStock):
        body["products"] = error.product_names
    return body, error.http_status


def handle_http_error(error):
    return {"ok": False, "error": error.description}, error.code


def handle_unexpected_error(error):
    print(f"[ERROR] {request.method} {request.path}: {error!r}")
    return {"ok": False, "error": f"Error interno: {error}"}, 500


def set_security_headers(response):
    response.headers['X-Frame-Options'] = 'DENY'
    response.headers['X-Content-Type-Options'] = 'nosniff'
    response.headers['Referrer-Policy'] = 'no-referrer-when-downgrade'
    response.headers['Permissions-Policy'] = 'geolocation=(), microphone=()'
    # HSTS solo con HTTPS real
    if request.is_secure:
        response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
    return response


# ═══════════════════════════════════════════════════════════════════════════
# FÁBRICA DE LA APLICACIÓN
# ═══════════════════════════════════════════════════════════════════════════

def create_app(base_path: str = None, container: AppContainer = None) -> Flask:
    """
    Crea la aplicación Flask.

    Args:
        base_path: Directorio de datos (por defecto NEGOCIO_DATA_DIR o ./data)
        container: Contenedor ya construido (tests)

    Returns:
        Aplicación lista para servir
    """
    app = Flask(__name__)

    secret_key = os.environ.get("NEGOCIO_SECRET_KEY")
    if PRODUCTION_MODE and not secret_key:
        print("[ADVERTENCIA] NEGOCIO_PRODUCTION activo sin NEGOCIO_SECRET_KEY definida")
        print("[ADVERTENCIA] Define la variable de entorno para mayor seguridad")
    app.secret_key = secret_key or _DEFAULT_SECRET

    app.config.update(
        SESSION_COOKIE_HTTPONLY=True,      # Protege contra XSS
        SESSION_COOKIE_SECURE=False,       # True solo para HTTPS
        SESSION_COOKIE_SAMESITE='Lax',
        PERMANENT_SESSION_LIFETIME=86400,  # 24 horas
    )

    if container is None:
        data_dir = base_path or os.environ.get('NEGOCIO_DATA_DIR') or DEFAULT_DATA_DIR
        container = get_container(data_dir)
    app.extensions['negocio'] = container

    init_profiling(app)

    app.register_blueprint(api)
    app.register_error_handler(BusinessError, handle_business_error)
    app.register_error_handler(HTTPException, handle_http_error)
    app.register_error_handler(Exception, handle_unexpected_error)
    app.after_request(set_security_headers)

    return app


if __name__ == "__main__":
    # Configuración para desarrollo local
    # En producción usar WSGI (gunicorn wsgi:app)
    DEBUG = os.environ.get('FLASK_DEBUG', '0') == '1'
    HOST = os.environ.get('FLASK_HOST', '0.0.0.0')
    PORT = int(os.environ.get('FLASK_PORT', 5000))

    if not DEBUG:
        print(f"\n{'='*50}")
        print(f"  Servidor iniciado en http://{HOST}:{PORT}")
        print(f"  Acceso local: http://localhost:{PORT}")
        print(f"{'='*50}\n")

    create_app().run(host=HOST, port=PORT, debug=DEBUG)
