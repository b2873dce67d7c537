"""
S2S VoIP Gateway infrastructure (AWS CDK)
"""
