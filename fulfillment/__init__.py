"""注文フルフィルメント: catalog / cart / order / payment / notification の各サービス"""
