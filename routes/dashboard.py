from flask import Blueprint, jsonify, request
from flask_login import login_required

from routes.decorators import permission_required
from services.dashboard_service import DashboardService

dashboard_bp = Blueprint('dashboard', __name__, url_prefix='/api/dashboard')


@dashboard_bp.route('')
@login_required
@permission_required('view_reports')
def overview():
    return jsonify(DashboardService.overview(request.args))


@dashboard_bp.route('/sales-chart')
@login_required
@permission_required('view_reports')
def sales_chart():
    return jsonify(DashboardService.sales_chart(request.args))


@dashboard_bp.route('/top-products')
@login_required
@permission_required('view_reports')
def top_products():
    return jsonify(DashboardService.top_products(request.args))


@dashboard_bp.route('/user-performance')
@login_required
@permission_required('view_reports')
def user_performance():
    return jsonify(DashboardService.user_performance(request.args))


@dashboard_bp.route('/category-sales')
@login_required
@permission_required('view_reports')
def category_sales():
    return jsonify(DashboardService.category_sales(request.args))


@dashboard_bp.route('/low-stock')
@login_required
@permission_required('view_reports', 'manage_inventory')
def low_stock_analysis():
    return jsonify(DashboardService.low_stock_analysis(request.args))


@dashboard_bp.route('/alerts')
@login_required
def alerts():
    return jsonify(DashboardService.alerts())
