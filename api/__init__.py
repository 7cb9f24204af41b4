"""
API 層

只負責 HTTP：解析 request、呼叫 DraftManager、把異常轉成 status code
"""
