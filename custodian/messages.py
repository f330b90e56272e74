"""User-facing chat texts."""

PHONE_REQUEST = "Please share your phone number to start using the bot."
PHONE_BUTTON = "Share phone number"
PHONE_SAVED = "Thank you! Your phone number has been saved."

HELP = """Welcome! I store and manage your files.

Available commands:
/list - list your files
/show <id> - send a file by its ID
/delete <id> - delete a file by its ID
/deleteall - delete all your files

Limits:
- Maximum file size: {max_size_mb} MB
- Supported types: documents, photos, videos, audio and voice messages

Send me any file to get started!"""

STATUS_REPLY = "Your message has been received, {first_name}.\nYour status: {status}"
STATUS_ADMIN = "administrator"
STATUS_REGULAR = "regular user"

UNKNOWN_COMMAND = "Sorry, there is no such command. Use /start to see the available commands."

UPLOAD_IN_PROGRESS = "⏳ Uploading the file to the database, please wait..."
UPLOAD_SUCCESS = "✅ File saved.\nFile ID: {file_id}\nFile name: {file_name}\nFile type: {file_type}"
UPLOAD_TOO_LARGE = "Sorry, the file is too large. The maximum file size is {max_size_mb} MB."
UPLOAD_TRANSPORT_ERROR = "Error while downloading the file."
UPLOAD_MALFORMED_RESPONSE = "Error while receiving the file: the file server returned an error."
UPLOAD_DUPLICATE = "This file has already been uploaded."
UPLOAD_STORAGE_ERROR = "Error while saving the file."

LIST_EMPTY = "You have no files available."
LIST_LINE = "{index}. {file_name} (ID: {file_id})"
LIST_ERROR = "Error while fetching the file list."

FILE_ID_MISSING = "Please specify the file ID. For example: /{command} 1"
FILE_ID_INVALID = "Invalid file ID format."
FILE_NOT_FOUND = "File not found."
FILE_FETCH_ERROR = "Error while fetching the file."
SHOW_WAIT = "Please wait while the file is loading..."
SHOW_PERMISSION_DENIED = "You do not have permission to access this file."
FILE_SEND_ERROR = "Error while sending the file. Files above 50 MB cannot be sent back through Telegram."
DELETE_PERMISSION_DENIED = "You do not have permission to delete this file."

CONFIRM_BUTTON = "✅ Confirm"
CANCEL_BUTTON = "❌ Cancel"
DELETE_CONFIRM_SINGLE = "Are you sure you want to delete the file {file_name}?"
DELETE_CONFIRM_ALL = "Are you sure you want to delete all your files? This action cannot be undone."
DELETE_SUCCESS_SINGLE = "File deleted."
DELETE_SUCCESS_ALL = "All your files have been deleted."
DELETE_ERROR_SINGLE = "Error while deleting the file."
DELETE_ERROR_ALL = "Error while deleting the files."
DELETE_CANCELLED_SINGLE = "File deletion cancelled."
DELETE_CANCELLED_ALL = "Deletion of files cancelled."
UNKNOWN_ACTION = "Unknown action."
