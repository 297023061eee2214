"""
AWS Goodies - browse CodeCommit and CodePipeline from the terminal.

An interactive wrapper around the AWS CLI that:
1. Remembers the last selected profile, repository and pipeline
2. Caches AWS responses locally with a freshness indicator
3. Renders copy-paste approval, merge and pipeline-approval commands

Usage:
    aws-goodies             # Interactive menu (auto-enters last selection)
    aws-goodies whoami      # Current profile and account
    aws-goodies switch      # Switch AWS profile
    aws-goodies table       # Format AWS JSON from stdin as a table
"""

__version__ = "2.1.0"
__author__ = "AWS Goodies"
