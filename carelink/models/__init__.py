from carelink.models.user import User
from carelink.models.doctor import Doctor
from carelink.models.appointment import Appointment
from carelink.models.prescription import Prescription
from carelink.models.workflow import Consultation, Message, Document, RefillRequest, Reminder
