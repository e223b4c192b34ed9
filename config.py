# config.py

import os

# 项目根目录 (所有相对路径以此为基准)
BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# --- 站点元数据 ---
# 站点元数据 (标题、作者、分析/评论/搜索服务) 统一写在这个 YAML 文件中
SITE_METADATA_FILE = os.path.join(BASE_DIR, 'site_metadata.yml')

# --- 模板配置 ---
TEMPLATE_DIR = os.path.join(BASE_DIR, 'templates')
BASE_TEMPLATE = 'base.html'
HEAD_TEMPLATE = 'head.html'

# 各服务的模板目录，文件名与服务名一致 (例如 analytics/googleAnalytics.html)
ANALYTICS_TEMPLATE_DIR = 'analytics'
COMMENTS_TEMPLATE_DIR = 'comments'
SEARCH_TEMPLATE_DIR = 'search'

# 评论组件挂载点 (页面中 id="comments" 的元素)
COMMENTS_CONTAINER_ID = 'comments'
# algolia 搜索框挂载点
SEARCH_CONTAINER_ID = 'search'

# --- 目录和文件配置 ---
BUILD_DIR = '_site'
PARTIALS_DIR_NAME = 'partials'

# 特殊文件名称
METADATA_JSON_FILE = 'site-metadata.json'
INDEX_FILE = 'index.html'
CSP_FILE = 'csp.txt'
MANIFEST_FILE = '.build_manifest.json'

# 片段文件 (供外部生成器 include)
HEAD_PARTIAL = 'head.html'
ANALYTICS_PARTIAL = 'analytics.html'
COMMENTS_PARTIAL = 'comments.html'
SEARCH_PARTIAL = 'search.html'

# --- 输出配置 ---
# 是否对生成的 HTML 进行最小化
MINIFY_OUTPUT = True
