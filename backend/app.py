#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import os
os.environ['PYTHONIOENCODING'] = 'utf-8'

"""
Flask PSD 导入服务器
把PSD文件转换为编辑器文档元素（文字/图片/占位矩形）
"""

from flask import Flask, request, jsonify, send_file
from flask_cors import CORS
import base64
import io
import logging
import sys
from pathlib import Path

# 添加backend目录到Python路径
BACKEND_DIR = Path(__file__).parent
sys.path.insert(0, str(BACKEND_DIR))

from config import CONFIG, settings, setup_logging
from font_cache import FontCache
from host_page import MemoryPage
from psd_importer import ImportOptions, PSDImporter
from psd_reader import PSDFormatError, is_psd_file, read_psd
from template_metadata import create_template_metadata, generate_thumbnail, get_psd_preview

logger = logging.getLogger(__name__)

app = Flask(__name__)
CORS(app)  # 启用跨域支持

# 配置
app.config['MAX_CONTENT_LENGTH'] = settings.max_content_length
app.config['API_BASE_URL'] = CONFIG["API_BASE_URL"]

# 会话级字体缓存，所有导入请求共用
font_cache = FontCache()
importer = PSDImporter(font_cache=font_cache)


def json_error(message: str, status: int = 400, include_success: bool = False, **kwargs):
    """统一错误响应格式

    - message: 错误信息
    - status: HTTP 状态码
    - include_success: 需要时附带 {"success": False}
    - kwargs: 额外字段
    """
    payload = {'error': message}
    if include_success:
        payload['success'] = False
    if kwargs:
        payload.update(kwargs)
    return jsonify(payload), status


def form_flag(name: str, default: bool = False) -> bool:
    value = request.form.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def form_int(name: str, default: int) -> int:
    value = request.form.get(name)
    if not value:
        return default
    number = int(value)
    if number <= 0:
        raise ValueError(f'{name} 必须为正整数')
    return number


def read_uploaded_psd():
    """读取上传的 psd 文件字段，返回 (文件名, 字节, 错误响应)"""
    if 'psd' not in request.files:
        return None, None, json_error('缺少psd文件', 400)

    psd_file = request.files['psd']
    if psd_file.filename == '':
        return None, None, json_error('未选择文件', 400)

    if not is_psd_file(psd_file.filename, psd_file.mimetype):
        return None, None, json_error('请选择 PSD 文件', 400)

    return psd_file.filename, psd_file.read(), None


@app.route('/api/health', methods=['GET'])
def health_check():
    """健康检查"""
    return jsonify({
        'status': 'ok',
        'message': 'PSD Import Server is running',
        'version': '1.0.0',
        'framework': 'Flask'
    })


@app.route('/api/validate', methods=['POST'])
def validate_psd():
    """验证PSD文件"""
    try:
        filename, data, error = read_uploaded_psd()
        if error:
            return error

        try:
            document = read_psd(data)
        except PSDFormatError as e:
            return jsonify({
                'valid': False,
                'error': str(e)
            }), 400

        return jsonify({
            'valid': True,
            'message': 'PSD文件验证成功',
            'info': {
                'filename': filename,
                'width': document.width,
                'height': document.height,
                'layers': len(document.layers),
                'resolution': document.resolution,
                'colorMode': document.color_mode,
            }
        })

    except Exception as e:
        logger.exception("[ERROR] 验证PSD时出错")
        return json_error(f'服务器错误: {str(e)}', 500)


@app.route('/api/import', methods=['POST'])
def import_psd():
    """导入PSD，返回元素列表与统计"""
    try:
        filename, data, error = read_uploaded_psd()
        if error:
            return error

        try:
            page = MemoryPage(
                form_int('canvasWidth', settings.canvas_width),
                form_int('canvasHeight', settings.canvas_height),
            )
        except ValueError as e:
            return json_error(f'画布尺寸无效: {str(e)}', 400, include_success=True)

        options = ImportOptions(rasterize_text=form_flag('rasterizeText'))
        try:
            summary = importer.import_bytes(data, page, options)
        except PSDFormatError as e:
            return json_error(str(e), 400, include_success=True)

        logger.info("[SUCCESS] %s 导入完成: %d 个元素", filename, summary.converted)
        return jsonify({
            'success': True,
            'data': {
                'elements': page.elements,
                'summary': summary.model_dump(by_alias=True),
            }
        })

    except Exception as e:
        logger.exception("[ERROR] 导入PSD时出错")
        return json_error(f'服务器错误: {str(e)}', 500, include_success=True)


@app.route('/api/metadata', methods=['POST'])
def template_metadata():
    """生成模板元数据与缩略图"""
    try:
        filename, data, error = read_uploaded_psd()
        if error:
            return error

        try:
            document = read_psd(data)
        except PSDFormatError as e:
            return json_error(str(e), 400, include_success=True)

        metadata = create_template_metadata(filename, document, len(data))
        metadata['thumbnail'] = generate_thumbnail(document)
        return jsonify({
            'success': True,
            'data': metadata
        })

    except Exception as e:
        logger.exception("[ERROR] 生成模板元数据时出错")
        return json_error(f'服务器错误: {str(e)}', 500, include_success=True)


@app.route('/api/preview', methods=['POST'])
def preview_psd():
    """返回PSD合成预览图(PNG)"""
    try:
        _, data, error = read_uploaded_psd()
        if error:
            return error

        try:
            document = read_psd(data)
        except PSDFormatError as e:
            return json_error(str(e), 400)

        data_url = get_psd_preview(document, font_cache)
        if not data_url:
            return json_error('无法生成预览图', 422)

        png_bytes = base64.b64decode(data_url.split(',', 1)[1])
        return send_file(io.BytesIO(png_bytes), mimetype='image/png')

    except Exception as e:
        logger.exception("[ERROR] 生成预览图时出错")
        return json_error(f'服务器错误: {str(e)}', 500)


@app.errorhandler(413)
def too_large(e):
    """文件过大错误处理"""
    limit_mb = settings.max_content_length // (1024 * 1024)
    return jsonify({
        'error': f'上传文件过大，最大支持{limit_mb}MB'
    }), 413


@app.errorhandler(404)
def not_found(e):
    """404错误处理"""
    return jsonify({
        'error': 'API端点不存在'
    }), 404


@app.errorhandler(500)
def server_error(e):
    """500错误处理"""
    return jsonify({
        'error': '服务器内部错误'
    }), 500


def main():
    """主函数"""
    import argparse

    parser = argparse.ArgumentParser(description='Flask PSD Import Server')
    parser.add_argument('--host', default='0.0.0.0', help='Server address (default: 0.0.0.0)')
    parser.add_argument('--port', type=int, default=settings.port, help=f'Port number (default: {settings.port})')
    parser.add_argument('--debug', action='store_true', help='Enable debug mode')

    args = parser.parse_args()
    setup_logging('DEBUG' if args.debug else None)

    public_domain = CONFIG["DOMAIN"]
    logger.info("=" * 60)
    logger.info("[START] Flask PSD Import Server Starting...")
    logger.info("[INFO] Active environment: %s", CONFIG['ENV'])
    logger.info("[INFO] Server address: http://%s:%s", args.host, args.port)
    logger.info("[INFO] Health check: http://%s:%s/api/health", public_domain, args.port)
    logger.info("[CONFIG] API endpoints:")
    logger.info("   POST /api/validate - Validate PSD file")
    logger.info("   POST /api/import - Convert PSD layers to document elements")
    logger.info("   POST /api/metadata - Template metadata and thumbnail")
    logger.info("   POST /api/preview - Composite preview image")
    logger.info("=" * 60)

    try:
        app.run(
            host=args.host,
            port=args.port,
            debug=args.debug,
            threaded=True
        )
    except KeyboardInterrupt:
        logger.info("[STOP] Server stopped")
    except Exception as e:
        logger.error("[ERROR] Server startup failed: %s", e)
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
