from flask import Blueprint, jsonify, request, send_file
from flask_login import login_required

from routes.decorators import permission_required, actor
from services.export import XLSX_MIMETYPE
from services.report_service import ReportService

reports_bp = Blueprint('reports', __name__, url_prefix='/api/reports')


def _respond(report_type, data):
    if data.get('format') == 'xlsx':
        return send_file(ReportService.export_xlsx(report_type, data, actor()), mimetype=XLSX_MIMETYPE,
                         as_attachment=True, download_name=f'relatorio-{report_type}.xlsx')
    return jsonify(ReportService.generate(report_type, data, actor()))


@reports_bp.route('')
@login_required
@permission_required('view_reports')
def list_reports():
    return jsonify({'reports': ReportService.available_reports(), 'userRole': actor().role})


@reports_bp.route('', methods=['POST'])
@login_required
@permission_required('view_reports')
def generate_report():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    return _respond(data.get('type'), data)


@reports_bp.route('/<report_type>')
@login_required
@permission_required('view_reports')
def report_by_type(report_type):
    return _respond(report_type, request.args.to_dict())
