"""API路由"""
