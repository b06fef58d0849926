"""
酒店预订服务
管理预订生命周期，协调房间服务与客户服务两个外部系统
"""
__version__ = "1.0.0"
